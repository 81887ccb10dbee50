import pytest
import pytest_asyncio
import respx
from litestar.testing import AsyncTestClient
from tenacity import stop_after_attempt, wait_none

from stakewatch._internal.common.constants import PRIMARY_SUBNET_ID
from stakewatch._internal.common.models import SubnetData
from stakewatch._internal.common.settings import settings
from stakewatch._internal.common.types import SubnetId, Threshold
from stakewatch.service.main import create_app
from stakewatch.service.platform.client import DEFAULT_RETRIES, PlatformClient, PlatformClientConfig
from stakewatch.service.platform.subnet import Subnet
from tests.mock_platform_client import MockPlatformClient


@pytest.fixture
def mock_client():
    return MockPlatformClient()


@pytest.fixture
def primary_subnet():
    return Subnet(SubnetData(id=PRIMARY_SUBNET_ID, control_keys=[], threshold=Threshold(1)))


@pytest.fixture
def other_subnet():
    return Subnet(SubnetData(id=SubnetId("2bRCr6B4MiEfSjidDwxDpdCyviwnfUVqB2HGwhm947w9YYqb7r"), threshold=Threshold(2)))


@pytest.fixture
def test_app(mock_client, monkeypatch):
    monkeypatch.setattr(settings, "refresh_interval_seconds", 0)
    return create_app(platform_client=mock_client)


@pytest_asyncio.fixture
async def test_client(test_app):
    async with AsyncTestClient(app=test_app) as client:
        yield client


@pytest.fixture
def registry(test_client):
    return test_client.app.state.registry


@pytest.fixture
def test_url():
    return "http://testserver"


@pytest.fixture
def service_mock(test_url):
    with respx.mock(base_url=test_url, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def platform_client(test_url):
    return PlatformClient(
        PlatformClientConfig(address=test_url, retry=DEFAULT_RETRIES.copy(wait=wait_none(), stop=stop_after_attempt(3)))
    )
