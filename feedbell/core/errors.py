class FeedbellError(Exception):
    pass


class SourceError(FeedbellError):
    """A source answered, but not with something we can use."""


class ChannelError(FeedbellError):
    def __init__(self, address: str, message: str):
        super().__init__(f"{address}: {message}")
        self.address = address
