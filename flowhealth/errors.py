class MessageDeliveryError(Exception):
    """The target context of a message is gone (closed tab, torn-down view)."""
