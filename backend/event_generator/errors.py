"""
Event Generator Errors
Typed failures raised by the generator registry and plugins.
"""


class EventGeneratorError(Exception):
    """Base class for all generator and delivery failures"""


class UnknownTemplateError(EventGeneratorError):
    """Raised when a generator does not support the requested template"""

    def __init__(self, template_id: str, event_type: str = ""):
        self.template_id = template_id
        self.event_type = event_type
        if event_type:
            message = f"unknown template ID: {template_id} (event type {event_type})"
        else:
            message = f"unknown template ID: {template_id}"
        super().__init__(message)


class EventTypeNotFoundError(EventGeneratorError):
    """Raised when the registry has no generator for an event type"""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"event type not found: {event_type}")


class DuplicateRegistrationError(EventGeneratorError):
    """Raised when two generators claim the same event type identifier"""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"event type already registered: {event_type}")


class SerializationError(EventGeneratorError):
    """Raised when a field map cannot be encoded into its wire format"""


class TemplateNotFoundError(EventGeneratorError):
    """Raised when a custom template id is not in the store"""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"template not found: {template_id}")


class BuiltinTemplateError(EventGeneratorError):
    """Raised on attempts to modify or delete a builtin template"""

    def __init__(self, template_id: str, action: str = "modify"):
        self.template_id = template_id
        super().__init__(f"cannot {action} builtin template: {template_id}")


class DeliveryError(EventGeneratorError):
    """Base class for sender failures"""


class ConfigurationError(DeliveryError):
    """Raised when a destination config is missing or carries invalid fields"""


class TransportError(DeliveryError):
    """Raised when a socket, file or HTTP operation fails"""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class NoiseError(EventGeneratorError):
    """Raised when continuous generation cannot be started, stopped or reconfigured"""
