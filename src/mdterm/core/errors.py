"""Fatal input-contract violations raised while rendering an event stream"""


class MalformedEventStream(ValueError):
    """The event stream does not pair Start and End events correctly."""


class StackUnderflow(MalformedEventStream):
    """An End event arrived with no open frame to close."""


class UnbalancedEvent(MalformedEventStream):
    """An End event does not match the kind of the innermost open frame."""


class UnterminatedFrame(MalformedEventStream):
    """The stream ended while frames were still open."""
