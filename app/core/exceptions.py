from fastapi import HTTPException, status


class NotFoundException(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ValidationException(HTTPException):
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class PdfGenerationException(HTTPException):
    def __init__(self, details: str = "Unknown error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Failed to generate PDF",
                "details": details,
            },
        )


class EbookGenerationError(Exception):
    """Raised by the export pipeline when no artifact could be produced.

    The message is a diagnostic string; routes convert it into a
    PdfGenerationException rather than letting it escape as a bare 500.
    """
