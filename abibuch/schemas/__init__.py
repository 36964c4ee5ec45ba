"""
schemas/ — Pydantic request/response models for the Abibuch API
"""
