"""Azure ARM provider: image/size lookups and VM submission via the ARM REST API."""

import json
import logging
import os
import re
import time
from dataclasses import dataclass, field, replace

import httpx

from armnode.errors import AzureApiError, ConfigurationError, ResourceNotFoundError
from armnode.provisioning.types import NodeMetadata, OsFamily
from armnode.redact import register_secret

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://management.azure.com"
DEFAULT_LOGIN_URL = "https://login.microsoftonline.com"
COMPUTE_API_VERSION = "2023-03-01"
NETWORK_API_VERSION = "2023-09-01"
# networkProfile.networkApiVersion required for inline NIC configurations
VM_NETWORK_API_VERSION = "2020-11-01"
DEFAULT_VM_SIZE = "Standard_B2s"
FIRST_RULE_PRIORITY = 1000

_CLASSIC_IMAGE_ID = re.compile(
    r"/publishers/(?P<publisher>[^/]+)/artifacttypes/vmimage/offers/(?P<offer>[^/]+)"
    r"/skus/(?P<sku>[^/]+)/versions/(?P<version>[^/]+)$",
    re.IGNORECASE,
)


@dataclass
class AzureCredentials:
    """Service principal credentials, or a pre-issued bearer token."""

    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    access_token: str = field(default="", repr=False)

    @classmethod
    def from_env(cls) -> "AzureCredentials":
        return cls(
            tenant_id=os.environ.get("AZURE_TENANT_ID", ""),
            client_id=os.environ.get("AZURE_CLIENT_ID", ""),
            client_secret=os.environ.get("AZURE_CLIENT_SECRET", ""),
            access_token=os.environ.get("AZURE_ACCESS_TOKEN", ""),
        )

    def missing(self) -> list[str]:
        if self.access_token:
            return []
        names = {
            "AZURE_TENANT_ID": self.tenant_id,
            "AZURE_CLIENT_ID": self.client_id,
            "AZURE_CLIENT_SECRET": self.client_secret,
        }
        return [k for k, v in names.items() if not v]


def _version_key(name):
    """Sort key for dotted image versions like '22.04.202401010'."""
    return tuple(int(p) if p.isdigit() else 0 for p in name.split("."))


def image_reference(image_id):
    """ARM imageReference for a resolved image id.

    Marketplace version ids are split back into publisher/offer/sku/version,
    anything else is referenced by id.
    """
    m = _CLASSIC_IMAGE_ID.search(image_id)
    if m:
        return m.groupdict()
    return {"id": image_id}


def _resource_name(resource_id):
    return resource_id.rstrip("/").rsplit("/", 1)[-1]


class AzureArmClient:
    """Azure Resource Manager client for one provider config.

    Implements the image lookup, size catalog and provisioning backend
    capabilities. All calls are blocking; nothing is cached except the
    access token. With *dry_run*, mutating requests are logged instead of
    sent; reads still go out.
    """

    def __init__(
        self,
        provider,
        credentials=None,
        api_url=None,
        login_url=DEFAULT_LOGIN_URL,
        default_size=DEFAULT_VM_SIZE,
        transport=None,
        dry_run=False,
    ):
        self.provider = provider
        self.dry_run = dry_run
        self.credentials = credentials or AzureCredentials.from_env()
        self.login_url = login_url
        self.default_size = default_size
        self._token = None
        self._token_expires = 0.0
        self._http = httpx.Client(
            base_url=api_url or provider.api_url or DEFAULT_API_URL,
            timeout=provider.timeout,
            transport=transport,
        )

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ── API helpers ────────────────────────────────────────────────

    def _require(self, value, key):
        if not value:
            raise ConfigurationError(
                f"Cloud provider '{self.provider.name}' is missing '{key}'",
                provider_name=self.provider.name,
                field=key,
            )
        return value

    def _subscription_path(self):
        return f"/subscriptions/{self._require(self.provider.subscription_id, 'subscription-id')}"

    def _check_credentials(self):
        missing = self.credentials.missing()
        if missing:
            raise ConfigurationError(
                f"Azure credentials for cloud provider '{self.provider.name}' are incomplete; set {', '.join(missing)}",
                provider_name=self.provider.name,
            )

    def check(self):
        """Validate everything submit() needs without making a remote call.

        Raises:
            ConfigurationError: credentials or a provider setting is missing.
        """
        self._check_credentials()
        for key, value in (
            ("subscription-id", self.provider.subscription_id),
            ("location", self.provider.location),
            ("resource-group", self.provider.resource_group),
            ("subnet-id", self.provider.subnet_id),
        ):
            self._require(value, key)

    def _fetch_token(self):
        """OAuth2 client-credentials flow against Microsoft Entra ID."""
        creds = self.credentials
        if creds.access_token:
            register_secret(creds.access_token)
            return creds.access_token, float("inf")

        self._check_credentials()

        url = f"{self.login_url}/{creds.tenant_id}/oauth2/v2.0/token"
        resp = self._http.post(
            url,
            data={
                "grant_type": "client_credentials",
                "client_id": creds.client_id,
                "client_secret": creds.client_secret,
                "scope": f"{DEFAULT_API_URL}/.default",
            },
        )
        if resp.status_code >= 400:
            raise AzureApiError(resp.status_code, *_error_details(resp), method="POST", url=url)
        body = resp.json()
        token = body["access_token"]
        register_secret(token)
        # refresh a minute early
        expires = time.monotonic() + int(body.get("expires_in", 3600)) - 60
        return token, expires

    def _access_token(self):
        if self._token is None or time.monotonic() >= self._token_expires:
            self._token, self._token_expires = self._fetch_token()
        return self._token

    def _api_request(self, method, path, api_version=COMPUTE_API_VERSION, params=None, json=None, allow_missing=False):
        """Make an authenticated ARM request.

        Returns:
            Parsed JSON body, or None for a 404 when *allow_missing* is set
            and for mutating requests in dry-run mode.
        """
        if self.dry_run and method != "GET":
            logger.info(f"[dry-run] {method} {path}")
            if json is not None:
                logger.info(f"[dry-run] payload: {_dumps_masked(json)}")
            return None

        query = {"api-version": api_version, **(params or {})}
        headers = {"Authorization": f"Bearer {self._access_token()}"}
        logger.debug(f"{method} {path}")
        resp = self._http.request(method, path, params=query, json=json, headers=headers)

        if resp.status_code == 404 and allow_missing:
            return None
        if resp.status_code >= 400:
            raise AzureApiError(resp.status_code, *_error_details(resp), method=method, url=path)
        if not resp.content:
            return {}
        return resp.json()

    # ── Image lookup ───────────────────────────────────────────────

    def get_managed_image(self, resource_group, image_name):
        """Return the id of a managed image, or None if it does not exist."""
        path = f"{self._subscription_path()}/resourceGroups/{resource_group}/providers/Microsoft.Compute/images/{image_name}"
        image = self._api_request("GET", path, allow_missing=True)
        return image.get("id") if image else None

    def get_classic_image(self, location, publisher, offer, sku, version):
        """Return the id of a marketplace image version, or None.

        ``latest`` picks the highest version currently listed for the sku.
        """
        base = (
            f"{self._subscription_path()}/providers/Microsoft.Compute/locations/{location}"
            f"/publishers/{publisher}/artifacttypes/vmimage/offers/{offer}/skus/{sku}/versions"
        )
        if version.lower() != "latest":
            found = self._api_request("GET", f"{base}/{version}", allow_missing=True)
            return found.get("id") if found else None

        versions = self._api_request("GET", base, allow_missing=True) or []
        if not versions:
            return None
        newest = max(versions, key=lambda v: _version_key(v.get("name", "")))
        logger.debug(f"Latest version of {publisher}:{offer}:{sku} in {location} is {newest.get('name')}")
        return newest.get("id")

    # ── Size catalog ───────────────────────────────────────────────

    def list_sizes(self):
        location = self._require(self.provider.location, "location")
        path = f"{self._subscription_path()}/providers/Microsoft.Compute/locations/{location}/vmSizes"
        result = self._api_request("GET", path)
        return {s["name"] for s in result.get("value", [])}

    # ── Provisioning ───────────────────────────────────────────────

    def _resource_group_path(self):
        return f"{self._subscription_path()}/resourceGroups/{self._require(self.provider.resource_group, 'resource-group')}"

    def _put_security_group(self, request):
        """Create/update the NSG that opens the request's inbound TCP ports."""
        rules = [
            {
                "name": f"allow-tcp-{port}",
                "properties": {
                    "priority": FIRST_RULE_PRIORITY + i,
                    "direction": "Inbound",
                    "access": "Allow",
                    "protocol": "Tcp",
                    "sourceAddressPrefix": "*",
                    "sourcePortRange": "*",
                    "destinationAddressPrefix": "*",
                    "destinationPortRange": str(port),
                },
            }
            for i, port in enumerate(request.inbound_ports)
        ]
        path = f"{self._resource_group_path()}/providers/Microsoft.Network/networkSecurityGroups/{request.node_name}-nsg"
        body = {"location": self.provider.location, "properties": {"securityRules": rules}}
        return self._api_request("PUT", path, api_version=NETWORK_API_VERSION, json=body)

    def build_vm_body(self, request, security_group_id):
        """ARM virtualMachines resource body for *request*."""
        if request.os_family is OsFamily.WINDOWS:
            os_config = {"windowsConfiguration": {"provisionVMAgent": True}}
        else:
            os_config = {"linuxConfiguration": {"disablePasswordAuthentication": False}}

        nic = {
            "name": f"{request.node_name}-nic",
            "properties": {
                "primary": True,
                "deleteOption": "Delete",
                "networkSecurityGroup": {"id": security_group_id},
                "ipConfigurations": [
                    {
                        "name": "ipconfig1",
                        "properties": {
                            "subnet": {"id": self._require(self.provider.subnet_id, "subnet-id")},
                            "publicIPAddressConfiguration": {
                                "name": f"{request.node_name}-pip",
                                "sku": {"name": "Standard"},
                                "properties": {"publicIPAllocationMethod": "Static", "deleteOption": "Delete"},
                            },
                        },
                    }
                ],
            },
        }

        return {
            "location": self.provider.location,
            "properties": {
                "hardwareProfile": {"vmSize": request.hardware_id or self.default_size},
                "storageProfile": {
                    "imageReference": image_reference(request.image_id),
                    "osDisk": {"createOption": "FromImage", "deleteOption": "Delete"},
                },
                "osProfile": {
                    "computerName": request.node_name,
                    "adminUsername": request.login_user,
                    "adminPassword": request.login_password,
                    **os_config,
                },
                "networkProfile": {
                    "networkApiVersion": VM_NETWORK_API_VERSION,
                    "networkInterfaceConfigurations": [nic],
                },
            },
        }

    def submit(self, request):
        """Create the VM described by *request*.

        Returns as soon as ARM accepts the resource; does not wait for the
        VM to finish provisioning.
        """
        self.check()

        nsg = self._put_security_group(request) or {}
        nsg_id = nsg.get("id", "")
        logger.debug(f"Network security group {nsg_id} allows inbound ports {list(request.inbound_ports)}")

        path = f"{self._resource_group_path()}/providers/Microsoft.Compute/virtualMachines/{request.node_name}"
        try:
            vm = self._api_request("PUT", path, json=self.build_vm_body(request, nsg_id))
        except (AzureApiError, httpx.HTTPError):
            logger.warning(
                f"Virtual machine {request.node_name} was not created; network security group {nsg_id} is left in place"
            )
            raise

        if vm is None:  # dry-run
            return NodeMetadata(
                id=path,
                name=request.node_name,
                status="dry-run",
                location=self.provider.location,
                hardware_id=request.hardware_id or self.default_size,
                image_id=request.image_id,
            )
        return NodeMetadata.from_arm(vm)

    def get_node_metadata(self, node_id):
        """Query the current state of a VM, including its IP addresses."""
        vm = self._api_request("GET", node_id, params={"$expand": "instanceView"}, allow_missing=True)
        if vm is None:
            raise ResourceNotFoundError(
                f"Azure virtual machine does not exist: {node_id} (cloud provider {self.provider.name})",
                criteria={"id": node_id},
                provider_name=self.provider.name,
            )
        metadata = NodeMetadata.from_arm(vm)

        public, private = [], []
        for ref in vm.get("properties", {}).get("networkProfile", {}).get("networkInterfaces", []):
            nic = self._api_request("GET", ref["id"], api_version=NETWORK_API_VERSION, allow_missing=True)
            if nic is None:
                logger.warning(f"Network interface {_resource_name(ref['id'])} of {metadata.name} not found")
                continue
            for ipc in nic.get("properties", {}).get("ipConfigurations", []):
                ipc_props = ipc.get("properties", {})
                if ipc_props.get("privateIPAddress"):
                    private.append(ipc_props["privateIPAddress"])
                pip_ref = ipc_props.get("publicIPAddress")
                if pip_ref:
                    pip = self._api_request("GET", pip_ref["id"], api_version=NETWORK_API_VERSION, allow_missing=True)
                    address = (pip or {}).get("properties", {}).get("ipAddress")
                    if address:
                        public.append(address)

        return replace(metadata, public_addresses=tuple(public), private_addresses=tuple(private))


def _error_details(resp):
    """(code, message) from an ARM or Entra ID error body."""
    try:
        body = resp.json()
    except ValueError:
        return "", resp.text.strip()
    error = body.get("error", {})
    if isinstance(error, dict):
        return error.get("code", ""), error.get("message", "")
    # Entra ID token errors: {"error": "invalid_client", "error_description": "..."}
    return str(error), body.get("error_description", "")


def _dumps_masked(body):
    """JSON rendering of a request body with the admin password masked."""
    os_profile = body.get("properties", {}).get("osProfile")
    if os_profile and "adminPassword" in os_profile:
        body = {**body, "properties": {**body["properties"], "osProfile": {**os_profile, "adminPassword": "***"}}}
    return json.dumps(body, indent=2)
