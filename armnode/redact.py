"""Centralized secret redaction for log output."""

import logging
import os
import re
import threading

# Env vars whose values should be redacted from all output
_SECRET_ENV_VARS = [
    "AZURE_CLIENT_SECRET",
    "AZURE_ACCESS_TOKEN",
]

_MIN_SECRET_LENGTH = 8  # skip short env values to avoid false positives

# Values registered at runtime (node passwords, access tokens)
_registered: set[str] = set()
_lock = threading.Lock()


def _collect_secret_values() -> set[str]:
    values = set(_registered)
    for var in _SECRET_ENV_VARS:
        val = os.environ.get(var, "")
        if len(val) >= _MIN_SECRET_LENGTH:
            values.add(val)
    return values


def _pattern(value: str) -> re.Pattern:
    if len(value) >= _MIN_SECRET_LENGTH:
        return re.compile(re.escape(value))
    # short values only match as a whole token, never inside a longer word
    return re.compile(rf"(?<![\w-]){re.escape(value)}(?![\w-])")


def _build_patterns(values: set[str]) -> list[re.Pattern]:
    # Sort by length descending so longer values match first
    return [_pattern(v) for v in sorted(values, key=len, reverse=True)]


# Lazy-initialized module cache
_patterns: list[re.Pattern] | None = None


def _get_patterns() -> list[re.Pattern]:
    global _patterns
    with _lock:
        if _patterns is None:
            _patterns = _build_patterns(_collect_secret_values())
        return _patterns


def register_secret(value: str) -> None:
    """Redact *value* from all subsequent log output.

    Values shorter than the minimum secret length are only redacted where
    they appear as a whole token.
    """
    global _patterns
    if not value:
        return
    with _lock:
        if value not in _registered:
            _registered.add(value)
            _patterns = None


def redact_secrets(text: str) -> str:
    """Replace known secret values with '***'."""
    return _apply(text, _get_patterns())


def _apply(text: str, patterns: list[re.Pattern]) -> str:
    for p in patterns:
        text = p.sub("***", text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Logging filter that replaces secret values in log records with '***'.

    Attached to the CLI log handler. Handles both f-string
    messages (msg is pre-formatted) and %-style messages (msg + args).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        patterns = _get_patterns()
        if patterns:
            record.msg = _apply(str(record.msg), patterns)
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {k: _apply(v, patterns) if isinstance(v, str) else v for k, v in record.args.items()}
                elif isinstance(record.args, tuple):
                    record.args = tuple(_apply(a, patterns) if isinstance(a, str) else a for a in record.args)
        return True
