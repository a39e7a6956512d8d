"""
API route handlers, one module per endpoint group (health, pipeline, forms,
personas).
"""
