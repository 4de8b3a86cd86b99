"""
E-shop Backend.

- backend/: API, services, repositories, models, configuration
"""
