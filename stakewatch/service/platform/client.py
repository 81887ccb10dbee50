import logging
from abc import ABC, abstractmethod
from typing import Any

from httpx import AsyncClient, HTTPStatusError, Request, RequestError, Response
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from stakewatch._internal.common.constants import PLATFORM_API_PATH, PlatformMethod
from stakewatch._internal.common.exceptions import FetchRequestException, FetchResponseException
from stakewatch._internal.common.models import Blockchain, StakingRecord, SubnetData
from stakewatch._internal.common.types import SubnetId
from stakewatch.service.metrics import platform_request_duration, rejected_records_total, track_operation

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = AsyncRetrying(
    wait=wait_exponential_jitter(initial=0.1, jitter=0.2),
    stop=stop_after_attempt(3),
    retry=retry_if_exception_type(FetchRequestException),
    reraise=True,
)

_subnets_adapter = TypeAdapter(list[SubnetData])
_blockchains_adapter = TypeAdapter(list[Blockchain])


class PlatformClientConfig(BaseModel):
    """
    Configuration for the platform clients.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    address: str
    timeout: float = 10.0
    retry: AsyncRetrying = DEFAULT_RETRIES


class AbstractPlatformClient(ABC):
    """
    Base for every async platform client.

    Platform client fetches raw staking records and chain metadata from the platform chain API.
    It has to be opened before use, preferably with a context manager:

    ```
    async with PlatformClient(PlatformClientConfig(address="https://api.avax.network")) as client:
        records = await client.get_current_validators(PRIMARY_SUBNET_ID)
    ```

    Every fetch method raises FetchException subclasses on failure.
    """

    def __init__(self, config: PlatformClientConfig):
        self.config = config

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @abstractmethod
    async def open(self) -> None:
        """
        Opens the client and prepares it for work.
        """

    @abstractmethod
    async def close(self) -> None:
        """
        Closes the client and cleans up resources.
        """

    async def get_current_validators(self, subnet_id: SubnetId) -> list[StakingRecord]:
        """
        Fetches staking records that are currently active in the subnet.
        """
        return await self._get_validators(PlatformMethod.CURRENT_VALIDATORS, subnet_id)

    async def get_pending_validators(self, subnet_id: SubnetId) -> list[StakingRecord]:
        """
        Fetches staking records whose staking period has not started yet.
        """
        return await self._get_validators(PlatformMethod.PENDING_VALIDATORS, subnet_id)

    @abstractmethod
    async def _get_validators(self, method: PlatformMethod, subnet_id: SubnetId) -> list[StakingRecord]:
        pass

    @abstractmethod
    async def get_subnets(self) -> list[SubnetData]:
        """
        Fetches all the subnets known to the platform chain.
        """

    @abstractmethod
    async def get_blockchains(self) -> list[Blockchain]:
        """
        Fetches all the blockchains known to the platform chain.
        """


class PlatformClient(AbstractPlatformClient):
    """
    JSON-RPC client of the platform chain API. Transport errors are retried according to the config.
    """

    def __init__(self, config: PlatformClientConfig):
        super().__init__(config)
        self._raw_client: AsyncClient | None = None
        self._request_id = 0

    async def open(self) -> None:
        assert self._raw_client is None, "The client is already open."
        logger.info(f"Opening the PlatformClient for {self.config.address}")
        self._raw_client = AsyncClient(base_url=self.config.address, timeout=self.config.timeout)

    async def close(self) -> None:
        assert self._raw_client is not None, "The client is already closed."
        logger.info(f"Closing the PlatformClient for {self.config.address}")
        await self._raw_client.aclose()
        self._raw_client = None

    @track_operation(platform_request_duration, labels={"endpoint": "param:method", "subnet": "param:subnet_id"})
    async def _get_validators(self, method: PlatformMethod, subnet_id: SubnetId) -> list[StakingRecord]:
        logger.debug(f"Fetching {method} of subnet {subnet_id} from {self.config.address}")
        request, response, result = await self._call(method, {"subnetID": subnet_id})
        return self._validate_records(result, method, request, response)

    @track_operation(platform_request_duration, labels={"endpoint": f"static:{PlatformMethod.SUBNETS}"})
    async def get_subnets(self) -> list[SubnetData]:
        logger.debug(f"Fetching subnets from {self.config.address}")
        request, response, result = await self._call(PlatformMethod.SUBNETS)
        return self._validate(_subnets_adapter, result, PlatformMethod.SUBNETS, request, response)

    @track_operation(platform_request_duration, labels={"endpoint": f"static:{PlatformMethod.BLOCKCHAINS}"})
    async def get_blockchains(self) -> list[Blockchain]:
        logger.debug(f"Fetching blockchains from {self.config.address}")
        request, response, result = await self._call(PlatformMethod.BLOCKCHAINS)
        return self._validate(_blockchains_adapter, result, PlatformMethod.BLOCKCHAINS, request, response)

    async def _call(
        self, method: PlatformMethod, params: dict[str, Any] | None = None
    ) -> tuple[Request, Response, Any]:
        """
        Performs a JSON-RPC call and returns the list stored under the method's result key.

        Raises:
            FetchRequestException: When the API could not be reached after all retry attempts.
            FetchResponseException: When the API returned a non 2XX status or a JSON-RPC error.
        """
        assert self._raw_client is not None, (
            "The client is not open, please use the client as a context manager or call the open() method."
        )
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "method": str(method), "params": params or {}, "id": self._request_id}
        request = self._raw_client.build_request("POST", PLATFORM_API_PATH, json=payload)
        async for attempt in self.config.retry.copy():
            with attempt:
                response = await self._send(request)

        try:
            body = response.json()
        except ValueError as exc:
            raise FetchResponseException(
                "Platform API returned a body that is not valid JSON.", request=request, response=response
            ) from exc
        if not isinstance(body, dict):
            raise FetchResponseException(
                "Platform API returned a body that is not a JSON-RPC object.", request=request, response=response
            )
        if body.get("error"):
            error = body["error"] if isinstance(body["error"], dict) else {"message": body["error"]}
            raise FetchResponseException(
                f"Platform API returned an error for {method}: {error.get('message')}",
                request=request,
                response=response,
                status=error.get("code"),
            )
        result = body.get("result")
        if not isinstance(result, dict):
            return request, response, []
        return request, response, result.get(method.result_key) or []

    async def _send(self, request: Request) -> Response:
        assert self._raw_client is not None
        try:
            response = await self._raw_client.send(request)
            response.raise_for_status()
        except RequestError as exc:
            logger.warning(f"An error occurred while requesting {request.url!r}: {exc}")
            raise FetchRequestException(
                "An error occurred while making a request to the platform API.", request=request
            ) from exc
        except HTTPStatusError as exc:
            raise FetchResponseException(
                "Invalid response from the platform API.", request=request, response=exc.response
            ) from exc
        return response

    @staticmethod
    def _validate(adapter: TypeAdapter, result: Any, method: PlatformMethod, request: Request, response: Response):
        try:
            return adapter.validate_python(result)
        except ValidationError as exc:
            raise FetchResponseException(
                f"Unexpected shape of the {method} result.", request=request, response=response
            ) from exc

    @staticmethod
    def _validate_records(
        result: Any, method: PlatformMethod, request: Request, response: Response
    ) -> list[StakingRecord]:
        """
        Validates staking records one by one. A record that does not fit the model is skipped and logged,
        the rest of the result is kept.

        Raises:
            FetchResponseException: When the result is not a list.
        """
        if not isinstance(result, list):
            raise FetchResponseException(
                f"Unexpected shape of the {method} result.", request=request, response=response
            )
        records = []
        for item in result:
            try:
                records.append(StakingRecord.model_validate(item))
            except ValidationError as exc:
                field = _invalid_field(exc)
                node_id = item.get("nodeID") if isinstance(item, dict) else None
                logger.warning(f"Skipping staking record of node {node_id} from {method}: invalid {field}")
                rejected_records_total.labels(field=field).inc()
        return records


_FIELD_BY_ALIAS = {field.alias or name: name for name, field in StakingRecord.model_fields.items()}


def _invalid_field(exc: ValidationError) -> str:
    loc = exc.errors()[0]["loc"]
    if not loc:
        return "record"
    return _FIELD_BY_ALIAS.get(str(loc[0]), str(loc[0]))
