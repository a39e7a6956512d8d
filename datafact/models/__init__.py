"""
Upstream clients: the text-generation provider, credential rotation, shared
HTTP connection pools and external service wrappers.
"""
