"""
datafact: HTTP backend gluing a generative-language API, web forms and a
persona store together for form-automation workflows.
"""

__version__ = "1.0.0"
