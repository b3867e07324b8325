import json
import traceback

class FundAnalyzeError(Exception):
    """Base exception for fundanalyze"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

class ValidationError(FundAnalyzeError):
    """Input validation errors"""
    pass

class ProviderError(FundAnalyzeError):
    """Upstream data provider errors (transport, HTTP status, payload)"""
    pass

class NotFoundError(FundAnalyzeError):
    """Ticker has no company profile upstream"""
    pass

class UnknownError(FundAnalyzeError):
    """Unexpected errors"""
    pass

def format_error(e: Exception) -> str:
    """Format exception as the JSON error envelope printed by the CLI"""

    if isinstance(e, FundAnalyzeError):
        error_type = e.__class__.__name__
        message = e.message
        details = e.details
    else:
        error_type = "UnknownError"
        message = str(e)
        details = {
            "traceback": traceback.format_exc().splitlines()
        }

    payload = {
        "ok": False,
        "error": {
            "type": error_type,
            "message": message,
            "details": details
        },
        "meta": {
            "version": 1
        }
    }

    return json.dumps(payload, indent=2)
