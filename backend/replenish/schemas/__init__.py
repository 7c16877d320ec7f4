from replenish.schemas.plan import (
    PlanCreate, PlanUpdate, PlanResponse, PlanRunScope, PlanRunResponse, RunResult, ErroredPair,
)
from replenish.schemas.planning import (
    TrajectoryBucketResponse,
    RecommendationResponse,
    RecommendationDecisionRequest,
    RecommendationModifyRequest,
    RecommendationConvertRequest,
    PlanningExceptionResponse,
    PlanningExceptionUpdateRequest,
    PlanningExceptionResolveRequest,
)
from replenish.schemas.policy import ItemPolicyResponse
