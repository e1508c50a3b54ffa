class X12Exception(Exception):
    pass


class X12ParserException(X12Exception):
    """Raised when the source text cannot be tokenized as an X12 interchange."""

    def __init__(self, message: str, line_number: int = 0):
        super().__init__(message)
        self.message = message
        self.line_number = line_number
