# app/core/exceptions.py


class IntegrationNotFoundError(Exception):
    """A configured integration has no registered handler"""

    def __init__(self, integration: str):
        self.integration = integration
        super().__init__(f"{integration} either is not registered or does not support sync")


class InvalidValueError(Exception):
    """Raised by a before-change hook to stop recording for one integration"""


class ObjectNotFoundError(Exception):
    """A referenced contact, company, campaign, event or asset does not exist"""

    def __init__(self, object_name: str, object_id=None):
        self.object_name = object_name
        self.object_id = object_id
        if object_id is None:
            super().__init__(f"{object_name} not found")
        else:
            super().__init__(f"{object_name} {object_id} not found")
