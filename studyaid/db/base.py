from studyaid.db.base_class import Base  # noqa: F401

# Import all the models here so that Base has them registered
# This file should NOT be imported by models.
from studyaid.models.note import Note  # noqa: F401
from studyaid.models.quiz import Quiz, QuizQuestion  # noqa: F401
from studyaid.models.job import Job  # noqa: F401
