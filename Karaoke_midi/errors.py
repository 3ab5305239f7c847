class InvalidConfig(ValueError):
    """A timeline or scoring parameter is out of range."""


class MalformedScoreData(ValueError):
    """Serialized scoring data is missing fields or has the wrong shape."""
