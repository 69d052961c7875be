from .leads import router as leads_router
from .stages import router as stages_router
from .change_requests import router as change_requests_router
from .public import router as public_router
