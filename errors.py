"""Error taxonomy shared by the store, the engines and the HTTP layer."""


class AnalyticsError(Exception):
    """Base class for every error the service reports to a client."""

    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message=None, detail=""):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.detail = detail

    def to_dict(self):
        return {"error": self.message, "detailed_error": self.detail}


class MalformedInput(AnalyticsError):
    """The upload is not a readable, well-formed top-level JSON array."""

    default_message = "Uploaded file is not a valid JSON array"


class RecordDecodeError(AnalyticsError):
    """A single array element could not be decoded into a user record."""

    default_message = "User record could not be decoded"

    def __init__(self, message=None, detail="", index=None):
        super().__init__(message, detail)
        self.index = index


class InvalidParameter(AnalyticsError):
    """A query-string parameter has an unusable value."""

    default_message = "Invalid query parameter"


class EmptyStore(AnalyticsError):
    """A query was issued before any user was ingested."""

    default_message = (
        "The users file was not uploaded or processed; there are no users in memory"
    )


class TargetUnreachable(AnalyticsError):
    """The evaluation harness could not reach one of its targets."""

    status_code = 502
    default_message = "Could not evaluate endpoint"

    def __init__(self, target, detail=""):
        super().__init__(f"Could not evaluate endpoint {target}", detail)
        self.target = target
