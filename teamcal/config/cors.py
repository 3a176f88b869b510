"""CORS configuration for the FastAPI application."""

import os

from .environment import IS_PRODUCTION_ENVIRONMENT

# CORS Origins configuration
ALLOWED_ORIGINS = {
    False: ["*"],  # Development - allow all
    True: [        # Production - restricted
        origin.strip()
        for origin in os.environ.get('CORS_ALLOWED_ORIGINS', '').split(',')
        if origin.strip()
    ]
}

ALLOWED_METHODS = [
    "GET",      # Events, feeds, attendance
    "POST",     # Creating events and groups, admin triggers
    "PATCH",    # Partial updates
    "DELETE",   # Series and occurrence deletes
    "OPTIONS"   # Required for CORS preflight
]

ALLOWED_HEADERS = [
    "Authorization",  # For admin endpoints
    "Content-Type",
    "Accept",
    "X-User-Id",      # Acting user
]

CORS_CONFIG = {
    "allow_origins": ALLOWED_ORIGINS[IS_PRODUCTION_ENVIRONMENT],
    "allow_credentials": True,
    "allow_methods": ALLOWED_METHODS,
    "allow_headers": ALLOWED_HEADERS,
    "expose_headers": ["Content-Disposition"],
    "max_age": 3600,
}
