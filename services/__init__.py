"""
Application services layer.

Services orchestrate selection and rating updates around the external
roster, history, rating and result collaborators.
"""

from services.result import Result

__all__ = ["Result"]
