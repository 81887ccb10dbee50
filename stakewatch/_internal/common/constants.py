from enum import StrEnum

from stakewatch._internal.common.types import BlockchainId, SubnetId, VmId

PRIMARY_SUBNET_ID = SubnetId("11111111111111111111111111111111LpoYY")

# The platform chain is not listed by platform.getBlockchains, it is added by hand.
PLATFORM_CHAIN_NAME = "P-Chain"
PLATFORM_CHAIN_ID = BlockchainId("11111111111111111111111111111111LpoYY")
PLATFORM_CHAIN_VM_ID = VmId("???")

PLATFORM_API_PATH = "/ext/P"


class PlatformMethod(StrEnum):
    """
    JSON-RPC methods of the platform chain API.
    """

    CURRENT_VALIDATORS = "platform.getCurrentValidators"
    PENDING_VALIDATORS = "platform.getPendingValidators"
    SUBNETS = "platform.getSubnets"
    BLOCKCHAINS = "platform.getBlockchains"

    @property
    def result_key(self) -> str:
        if self in (PlatformMethod.CURRENT_VALIDATORS, PlatformMethod.PENDING_VALIDATORS):
            return "validators"
        return self.removeprefix("platform.get").lower()
