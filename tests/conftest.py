"""Shared pytest fixtures for all test modules."""

import os
import subprocess
import sys

import pytest
import yaml

import armnode.redact as redact_module
from armnode.provisioning.types import NodeMetadata

PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))

MANAGED_IMAGE_ID = "/subscriptions/0000/resourceGroups/rg1/providers/Microsoft.Compute/images/img1"
CLASSIC_IMAGE_ID = (
    "/Subscriptions/0000/Providers/Microsoft.Compute/Locations/westeurope/Publishers/Canonical"
    "/ArtifactTypes/VMImage/Offers/ubuntu-24_04-lts/Skus/server/Versions/24.04.202409120"
)


class StubCloud:
    """In-memory ImageLookup + SizeCatalog + ProvisioningBackend that records calls."""

    def __init__(self, managed=None, classic=None, sizes=None, submit_error=None, check_error=None):
        self.managed = dict(managed or {})
        self.classic = dict(classic or {})
        self.sizes = set(sizes or ())
        self.submit_error = submit_error
        self.check_error = check_error
        self.checks = 0
        self.calls = []
        self._refreshes = 0

    def call_names(self):
        return [c[0] for c in self.calls]

    def get_managed_image(self, resource_group, image_name):
        self.calls.append(("get_managed_image", resource_group, image_name))
        return self.managed.get((resource_group, image_name))

    def get_classic_image(self, location, publisher, offer, sku, version):
        self.calls.append(("get_classic_image", location, publisher, offer, sku, version))
        return self.classic.get((location, publisher, offer, sku, version))

    def list_sizes(self):
        self.calls.append(("list_sizes",))
        return set(self.sizes)

    def check(self):
        self.checks += 1
        if self.check_error is not None:
            raise self.check_error

    def submit(self, request):
        self.calls.append(("submit", request))
        if self.submit_error is not None:
            raise self.submit_error
        return NodeMetadata(
            id=f"/subscriptions/0000/resourceGroups/vms/providers/Microsoft.Compute/virtualMachines/{request.node_name}",
            name=request.node_name,
            status="Creating",
            hardware_id=request.hardware_id,
            image_id=request.image_id,
        )

    def get_node_metadata(self, node_id):
        self.calls.append(("get_node_metadata", node_id))
        self._refreshes += 1
        return NodeMetadata(
            id=node_id,
            name=node_id.rsplit("/", 1)[-1],
            status="running",
            public_addresses=(f"20.0.0.{self._refreshes}",),
        )


@pytest.fixture
def cloud():
    """StubCloud knowing managed image rg1/img1, one Ubuntu classic image and two sizes."""
    return StubCloud(
        managed={("rg1", "img1"): MANAGED_IMAGE_ID},
        classic={("westeurope", "Canonical", "ubuntu-24_04-lts", "server", "latest"): CLASSIC_IMAGE_ID},
        sizes={"Standard_B2s", "Standard_D2s_v3"},
    )


@pytest.fixture(autouse=True)
def _reset_redaction():
    """Registered secrets are process-global; isolate them per test."""
    redact_module._registered.clear()
    redact_module._patterns = None
    yield
    redact_module._registered.clear()
    redact_module._patterns = None


@pytest.fixture(scope="session")
def project_root():
    """Absolute path to the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def run_cli(project_root):
    """Return a callable that invokes the armnode CLI as a subprocess."""

    def _run(*args, env=None):
        result = subprocess.run(
            [sys.executable, "-m", "armnode.armnode", *args],
            capture_output=True,
            text=True,
            cwd=project_root,
            env={**os.environ, **(env or {})},
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture
def make_config(tmp_path):
    """Return a factory that writes a temporary armnode config.yaml."""

    def _make(nodes=None, providers=None):
        if providers is None:
            providers = {
                "azure-test": {
                    "type": "azure-arm",
                    "subscription-id": "0000",
                    "location": "westeurope",
                    "resource-group": "vms",
                    "subnet-id": "/subscriptions/0000/resourceGroups/net/providers/Microsoft.Network/virtualNetworks/vnet/subnets/default",
                }
            }
        if nodes is None:
            nodes = {
                "web1": {
                    "provider": "azure-test",
                    "image-selection-mode": "image",
                    "resource-group": "rg1",
                    "image-name": "img1",
                    "ssh-user": "azureuser",
                    "ssh-password": "Sup3r-Secret-Pw",
                    "inbound-ports": "22,8080",
                }
            }
        path = tmp_path / "config.yaml"
        with open(path, "w") as f:
            yaml.dump({"providers": providers, "nodes": nodes}, f)
        return str(path)

    return _make
