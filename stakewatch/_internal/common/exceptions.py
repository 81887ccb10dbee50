from httpx import Request, Response


class BaseStakewatchException(Exception):
    """
    Base class for every stakewatch exception.
    """


class FetchException(BaseStakewatchException):
    """
    Base class for errors raised while fetching data from the platform API.
    """


class FetchRequestException(FetchException):
    """
    Error that the platform client issues on a failed request (after all retries failed).
    """

    def __init__(self, msg: str, request: Request):
        super().__init__(msg)
        self.msg = msg
        self.request = request


class FetchResponseException(FetchException):
    """
    Error that the platform client issues on a non 2XX HTTP status response or a JSON-RPC error object.
    """

    def __init__(self, msg: str, request: Request, response: Response, status: int | None = None):
        super().__init__(msg)
        self.msg = msg
        self.status = status if status is not None else response.status_code
        self.request = request
        self.response = response


class MalformedRecordException(BaseStakewatchException):
    """
    Raised when a raw staking record carries a field that cannot be parsed.
    """

    def __init__(self, msg: str, node_id: str, field: str, value: str | None):
        super().__init__(msg)
        self.msg = msg
        self.node_id = node_id
        self.field = field
        self.value = value
