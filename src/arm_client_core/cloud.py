"""Cloud endpoint configuration.

Clients receive a `CloudConfiguration` at construction; there is no
process-wide registry.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CloudConfiguration:
    """Endpoints and token audience for one Azure cloud."""

    name: str
    authority_host: str
    resource_manager_endpoint: str
    resource_manager_audience: str

    @property
    def default_scope(self) -> str:
        """Token scope covering the resource manager audience."""
        return f"{self.resource_manager_audience.rstrip('/')}/.default"


AZURE_PUBLIC_CLOUD = CloudConfiguration(
    name="AzurePublicCloud",
    authority_host="https://login.microsoftonline.com/",
    resource_manager_endpoint="https://management.azure.com",
    resource_manager_audience="https://management.core.windows.net/",
)

AZURE_CHINA_CLOUD = CloudConfiguration(
    name="AzureChinaCloud",
    authority_host="https://login.chinacloudapi.cn/",
    resource_manager_endpoint="https://management.chinacloudapi.cn",
    resource_manager_audience="https://management.core.chinacloudapi.cn",
)

AZURE_GOVERNMENT = CloudConfiguration(
    name="AzureUSGovernment",
    authority_host="https://login.microsoftonline.us/",
    resource_manager_endpoint="https://management.usgovcloudapi.net",
    resource_manager_audience="https://management.core.usgovcloudapi.net",
)
