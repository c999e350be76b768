from typing import Any, Type, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from assetgate.core.config import settings
from assetgate.core.exceptions.license_vendor import LicenseVendorUnavailableError
from assetgate.core.logger import mask_secret
from assetgate.schemas import VendorActivation, VendorOrder, VendorValidation

ResponseModel = TypeVar("ResponseModel", bound=BaseModel)


class LemonSqueezyClient:
    """
    Client for the Lemon Squeezy license and order APIs.

    License endpoints answer 4xx with a JSON body for rejected keys, so only transport
    errors, 5xx responses and unreadable bodies count as the vendor being unavailable.
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = (api_url or settings.lemonsqueezy_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.lemonsqueezy_api_key
        self.timeout = timeout or settings.lemonsqueezy_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Accept": "application/json"},
        )

    @property
    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    async def _request(
        self,
        method: str,
        path: str,
        model: Type[ResponseModel],
        accept_client_errors: bool = True,
        **kwargs: Any,
    ) -> ResponseModel:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"License vendor request {method} {path} failed: {e}")
            raise LicenseVendorUnavailableError(exception=e) from e

        if response.is_server_error or (response.is_client_error and not accept_client_errors):
            logger.error(f"License vendor {method} {path} answered {response.status_code}")
            raise LicenseVendorUnavailableError()

        try:
            return model.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Unreadable license vendor response for {method} {path}: {e}")
            raise LicenseVendorUnavailableError(exception=e) from e

    async def validate(self, license_key: str) -> VendorValidation:
        """
        Ask the vendor whether ``license_key`` exists and which product it belongs to.

        Raises:
            LicenseVendorUnavailableError: On network errors, 5xx or unreadable responses
        """
        logger.debug(f"Validating license {mask_secret(license_key)} with vendor")

        return await self._request(
            "POST",
            "/licenses/validate",
            VendorValidation,
            data={"license_key": license_key},
        )

    async def activate(self, license_key: str, instance_name: str) -> VendorActivation:
        """
        Activate ``license_key`` for one instance, using up one activation slot.

        Raises:
            LicenseVendorUnavailableError: On network errors, 5xx or unreadable responses
        """
        logger.debug(f"Activating license {mask_secret(license_key)} as {instance_name}")

        return await self._request(
            "POST",
            "/licenses/activate",
            VendorActivation,
            data={"license_key": license_key, "instance_name": instance_name},
            headers=self._auth_headers,
        )

    async def get_order_total(self, order_id: int) -> int:
        """
        Total of an order in minor units.

        Raises:
            LicenseVendorUnavailableError: On any failure, including 4xx
        """
        order = await self._request(
            "GET",
            f"/orders/{order_id}",
            VendorOrder,
            accept_client_errors=False,
            headers={**self._auth_headers, "Accept": "application/vnd.api+json"},
        )

        return order.data.attributes.total
