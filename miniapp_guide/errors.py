# miniapp_guide/errors.py


class GuideServiceError(Exception):
    """
    Base for every error that is reported to the caller with a stable code.
    """

    code = "COMMON500"
    message = "Internal server error."
    http_status = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"status": "error", "code": self.code, "message": self.message}


class InvalidRequest(GuideServiceError):
    code = "COMMON400"
    message = "Invalid request."
    http_status = 400


# --- Archive intake ---

class EmptyArchive(GuideServiceError):
    code = "ARCHIVE4001"
    message = "The uploaded archive is empty."
    http_status = 400


class OversizedArchive(GuideServiceError):
    code = "ARCHIVE4002"
    message = "The uploaded archive exceeds the maximum allowed size."
    http_status = 400


class InvalidFormat(GuideServiceError):
    code = "ARCHIVE4003"
    message = "The uploaded file is not a zip archive."
    http_status = 400


class NoMatchingSourceFiles(GuideServiceError):
    code = "ARCHIVE4004"
    message = "The archive contains no supported source files."
    http_status = 400


class ArchiveExtractionFailed(GuideServiceError):
    code = "ARCHIVE5001"
    message = "The archive could not be read."
    http_status = 500


# --- Guides ---

class GuideGenerationFailed(GuideServiceError):
    code = "GUIDE5001"
    message = "The guide could not be generated."
    http_status = 500


class GuideNotFound(GuideServiceError):
    code = "GUIDE4041"
    message = "Guide not found."
    http_status = 404
