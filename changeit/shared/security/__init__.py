"""
HTTP security concerns: response headers and rate limiting.
"""
