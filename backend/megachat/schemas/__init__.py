"""
Pydantic schemas package.
"""
