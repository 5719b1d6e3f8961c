from fundbridge.schemas.primitives import EvmAddress, TxHash, HumanAmount, OwnerRequest
from fundbridge.schemas.contributions import ContributionSubmitRequest, ContributionReverifyRequest, ContributionResult
from fundbridge.schemas.bridge import BridgePrepareRequest, BridgeAttachRequest, BridgeReverifyRequest
from fundbridge.schemas.projects import ProjectCreateRequest, GoalSetRequest, PurposeCreateRequest, ProgressResponse
from fundbridge.schemas.distribution import DistributionPlanRequest, DistributionExecuteRequest
