class ConfigurationError(Exception):
    """A required credential or identifier is missing from the settings."""

    pass


class RemoteApiError(Exception):
    """A remote API answered with a non-2xx status."""

    def __init__(self, service: str, status_code: int, body: str):
        self.service = service
        self.status_code = status_code
        self.body = body
        super().__init__(f"{service} API error {status_code}: {body}")


class DataShapeError(Exception):
    """A remote document does not have the structure we expected."""

    pass
