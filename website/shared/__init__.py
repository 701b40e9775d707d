"""
Shared module package.

Contains cross-cutting concerns used across the application:
- Error normalization and handler registration
- Security headers and rate limiting
- Request logging and body parsing middleware
- Crash reporting
- Logging configuration
"""
