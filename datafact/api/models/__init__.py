"""
Pydantic models for API request/response schemas.

Wire field names follow the contract existing workflow clients already send;
they are kept separate from the internal pipeline types.
"""
