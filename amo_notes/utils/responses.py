# amo_notes/utils/responses.py

def format_response(success: bool, data=None, message: str = ""):
    return {
        "success": success,
        "data": data,
        "message": message,
    }

def format_error_response(exc, status_code=500):
    error = {
        "type": exc.__class__.__name__,
        "detail": getattr(exc, "detail", None) or str(exc),
        "status_code": status_code,
    }
    # amoCRM's own status, when the failure came from its API or token endpoint
    upstream_status = getattr(exc, "http_code", None)
    if upstream_status is not None:
        error["upstream_status"] = upstream_status
    return {"success": False, "error": error}
