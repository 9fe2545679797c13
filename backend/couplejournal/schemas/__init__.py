"""
Pydantic request/response models and the explicit input validators.
"""
