# Error taxonomy surfaced through the {success, error} envelope


class GalleryError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class Unauthorized(GalleryError):
    status_code = 401
    message = "Authentication required"


class Forbidden(GalleryError):
    status_code = 403
    message = "Insufficient permissions"


class InvalidInput(GalleryError):
    status_code = 400
    message = "Invalid input"


class UpstreamUnavailable(GalleryError):
    """An index or blob store call failed; the caller only sees `message`."""
    status_code = 500
    message = "Storage backend unavailable"
