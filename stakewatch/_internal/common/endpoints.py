import re
from enum import StrEnum


class ApiVersion(StrEnum):
    V1 = "v1"

    @property
    def prefix(self) -> str:
        return f"/api/{self}"


class Endpoint(StrEnum):
    SUBNETS = "/subnets"
    SUBNET = "/subnets/{subnet_id:str}"
    STATS = "/stats"

    def for_version(self, version: ApiVersion):
        return f"{version.prefix}{self}"

    def format_endpoint(self, **kwargs) -> str:
        # remove :int and :str from the endpoint to be able to format it
        return re.sub(r":(\w+)", "", self).format(**kwargs)
