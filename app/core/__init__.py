"""
Core Application - Infrastructure & Base Classes

Generic, reusable base classes shared by the authentication, listings and
chat apps. Nothing here knows about rooms or messages.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError, NotFoundError, AuthenticationError,
      ConflictError, TransientError

Helpers (import from core.helpers):
    - validate_uuid / parse_uuid: Identifier validation
    - extract_bearer_token: Authorization header parsing

Views (import from core.views):
    - health_check: Database and cache check
"""
