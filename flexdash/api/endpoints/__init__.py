"""
API Endpoints
=============
Endpoint modules mounted by the main router.
"""
