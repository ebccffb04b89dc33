"""Google Secret Manager client used as a fallback source for the GitHub token."""
import logging
import os
from typing import Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

logger = logging.getLogger(__name__)


class GCPSecretClient:
    """Wrapper around the Secret Manager client."""

    def __init__(self, service_account_path: Optional[str] = None):
        self._client = None
        self._service_account_path = service_account_path

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            if self._service_account_path:
                self._client = secretmanager.SecretManagerServiceClient.from_service_account_file(
                    self._service_account_path
                )
            else:
                self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    @staticmethod
    def resolve_project_id(configured: Optional[str] = None) -> Optional[str]:
        """
        GCP project ID from the GCP_PROJECT environment variable (takes
        precedence, allows override) or the configured value.
        """
        gcp_project_env = os.getenv("GCP_PROJECT")
        if gcp_project_env:
            logger.debug(f"Using GCP_PROJECT from environment: {gcp_project_env}")
            return gcp_project_env
        return configured

    def fetch_secret(self, secret_name: str, project_id: str) -> Optional[str]:
        """
        Fetch the latest version of a secret.

        Returns:
            Secret value, or None if the secret cannot be read
        """
        name = f"projects/{project_id}/secrets/{secret_name}/versions/latest"
        try:
            response = self.client.access_secret_version(request={"name": name})
        except gcp_exceptions.GoogleAPICallError as e:
            logger.warning(f"GCP fetch failed for {secret_name}: {e}")
            return None
        return response.payload.data.decode("UTF-8").strip()
