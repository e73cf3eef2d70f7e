class PortfolioError(Exception):
    """Base class for infrastructure faults raised by the services."""


class StoreUnavailableError(PortfolioError):
    """The subscriber store could not be read or written."""


class MailTransportError(PortfolioError):
    """A single email could not be handed to the SMTP server."""

    def __init__(self, recipient, reason):
        super().__init__(f"Delivery to {recipient} failed: {reason}")
        self.recipient = recipient
        self.reason = reason
