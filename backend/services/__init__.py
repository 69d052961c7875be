from .auth import get_current_user, require_roles, require_admin
from .errors import (
    PipelineError, ValidationError, NotFoundError,
    PermissionDeniedError, ConflictError, TransportError
)
from .history import log_history, log_data_changes
from .transition_rules import can_transition, infer_stage_category
from .visibility import visible_leads, is_visible
