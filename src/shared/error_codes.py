# src/shared/error_codes.py
# Central mapping that aligns with the API error contract.
# Keep keys stable, UI clients display these messages verbatim.
ERROR_CODES = {
    # ─── Validation & Requests ──────────────────────────────────────────────
    "validation_error": {
        "http": 400,
        "message": "Validation failed for one or more fields."
    },
    "invalid_request": {
        "http": 422,
        "message": "Invalid request payload."
    },
    "menu_validation_failed": {
        "http": 422,
        "message": "One or more menus are not publishable."
    },

    # ─── Authentication & Authorization ────────────────────────────────────
    "unauthorized": {
        "http": 401,
        "message": "Unauthorized. Please provide valid credentials."
    },
    "invalid_token": {
        "http": 401,
        "message": "Invalid or expired token."
    },
    "line_channel_not_configured": {
        "http": 401,
        "message": "No LINE channel access token is configured for this user."
    },

    # ─── Resources ─────────────────────────────────────────────────────────
    "not_found": {
        "http": 404,
        "message": "Resource not found."
    },
    "publish_job_not_found": {
        "http": 404,
        "message": "Publish job not found."
    },
    "draft_not_found": {
        "http": 404,
        "message": "Draft not found."
    },
    "conflict": {
        "http": 409,
        "message": "Conflict with the current state of the resource."
    },
    "publish_in_progress": {
        "http": 409,
        "message": "Another publish is already running for this account."
    },

    # ─── Upstream / Server ─────────────────────────────────────────────────
    "line_api_error": {
        "http": 502,
        "message": "LINE Messaging API request failed."
    },
    "publish_failed": {
        "http": 502,
        "message": "Publishing to LINE failed."
    },
    "internal_error": {
        "http": 500,
        "message": "Internal server error."
    },
}
