"""
HTTP layer: routes, request/response models, dependencies, error handlers.
"""
