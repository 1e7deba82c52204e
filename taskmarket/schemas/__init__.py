"""Schema modules."""
from taskmarket.schemas.common import Actor
from taskmarket.schemas.commission import CommissionBreakdown, CommissionTier
from taskmarket.schemas.library import (
    BrandBriefPayload,
    ChecklistPayload,
    CredentialsPayload,
    LibraryPayload,
    ResourceLibraryPayload,
)
from taskmarket.schemas.task import (
    ApplicationResponse,
    TaskAssignmentResponse,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
    TimelineMessageResponse,
)
from taskmarket.schemas.project import (
    CampaignCreate,
    CampaignTree,
    ProjectCreate,
    ProjectTree,
    ProjectUpdate,
    SprintCreate,
    SprintTree,
)
from taskmarket.schemas.review import ReviewPage, ReviewResponse
