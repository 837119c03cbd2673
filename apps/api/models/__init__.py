"""Models package."""

from .user import User
from .pet import Pet
from .content_submission import ContentSubmission
