"""Core constants: HTTP status codes, error messages and shared literals."""

from http import HTTPStatus

# Statuses the transport classifies explicitly
HTTP_UNAUTHORIZED = HTTPStatus.UNAUTHORIZED.value
HTTP_FORBIDDEN = HTTPStatus.FORBIDDEN.value
HTTP_NOT_FOUND = HTTPStatus.NOT_FOUND.value
HTTP_UNPROCESSABLE_ENTITY = HTTPStatus.UNPROCESSABLE_ENTITY.value
HTTP_NO_CONTENT = HTTPStatus.NO_CONTENT.value
HTTP_SERVER_ERROR_MIN = HTTPStatus.INTERNAL_SERVER_ERROR.value

# User-facing messages per error class
ERROR_MESSAGES = {
    "UNAUTHORIZED": "Unauthorized access. Please sign in again.",
    "FORBIDDEN": "Access forbidden. Insufficient permissions.",
    "NOT_FOUND": "Resource not found.",
    "VALIDATION_ERROR": "Validation errors occurred.",
    "SERVER_ERROR": "Internal server error. Please try again later.",
    "NETWORK_ERROR": "Network error. Please check your connection.",
    "REQUEST_ERROR": "Request error occurred.",
    "RESPONSE_ERROR": "The server returned data in an unexpected format.",
}

# Content-Type is left to httpx so JSON and multipart bodies each get the right one
DEFAULT_HEADERS = {
    "Accept": "application/json",
}

# Multipart field name used by import endpoints
UPLOAD_FIELD_NAME = "file"
UPLOAD_CHUNK_SIZE = 64 * 1024

# Prefix for client-side placeholder ids of optimistically created entities
TEMP_ID_PREFIX = "temp-"
