from typing import NewType

NodeId = NewType("NodeId", str)
SubnetId = NewType("SubnetId", str)
BlockchainId = NewType("BlockchainId", str)
VmId = NewType("VmId", str)
Address = NewType("Address", str)
ControlKey = NewType("ControlKey", str)

# Stake is denominated in the smallest unit, so python ints keep it exact.
StakeAmount = NewType("StakeAmount", int)
Weight = NewType("Weight", int)
Rank = NewType("Rank", int)
Elapsed = NewType("Elapsed", int)
Threshold = NewType("Threshold", int)
