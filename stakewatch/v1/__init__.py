from stakewatch._internal.common.constants import PLATFORM_CHAIN_ID, PRIMARY_SUBNET_ID, PlatformMethod
from stakewatch._internal.common.endpoints import ApiVersion, Endpoint
from stakewatch._internal.common.exceptions import (
    BaseStakewatchException,
    FetchException,
    FetchRequestException,
    FetchResponseException,
    MalformedRecordException,
)
from stakewatch._internal.common.models import (
    Blockchain,
    Delegation,
    StakingRecord,
    Stats,
    SubnetData,
    SubnetDetails,
    SubnetSummary,
    Validator,
    ValidatorSet,
)
from stakewatch._internal.common.types import (
    Address,
    BlockchainId,
    ControlKey,
    Elapsed,
    NodeId,
    Rank,
    StakeAmount,
    SubnetId,
    Threshold,
    VmId,
    Weight,
)
from stakewatch.service.platform.client import (
    DEFAULT_RETRIES,
    AbstractPlatformClient,
    PlatformClient,
    PlatformClientConfig,
)
from stakewatch.service.platform.registry import PlatformRegistry
from stakewatch.service.platform.subnet import Subnet
