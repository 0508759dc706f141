"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps
(authentication, friends, chat). Nothing here knows about chats or users.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Services (import from core.services):
    - BaseService: Base class for service layer (logger, atomic, on_commit)

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError: Input validation failures (400)
    - NotAuthorizedError: Authorization failures (403)
    - NotFoundError: Resource not found (404)
    - ConflictError: State conflicts (409)
    - UpstreamServiceError: Media/mail service failures (502)

Exception handler (core.exception_handler):
    - api_exception_handler: DRF EXCEPTION_HANDLER producing the error body

Helpers (import from core.helpers):
    - generate_token: Cryptographically secure token generation
    - hash_string: String hashing

Views (core.views):
    - health_check: Liveness/readiness endpoint
"""
