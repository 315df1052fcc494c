# fastapi_granular_search/exceptions.py

from fastapi import HTTPException


class GranularSearchError(HTTPException):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)

    def __str__(self) -> str:
        return str(self.detail)


class InvalidInput(GranularSearchError):
    """Malformed parameters, or malformed excluded/fuzzy key lists."""
    status_code = 400


class UnknownEntity(GranularSearchError):
    pass


class UnknownRelation(GranularSearchError):
    pass


class ConfigurationError(GranularSearchError):
    pass
