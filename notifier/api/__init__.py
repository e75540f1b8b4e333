"""
API module.
Exposes health/stats endpoints and a publish endpoint for notifications.
"""
