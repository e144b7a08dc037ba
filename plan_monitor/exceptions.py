from typing import Optional


class AgentRequestError(Exception):
    """The agent could not be reached or did not answer with success."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
