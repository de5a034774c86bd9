from studyaid.models.note import Note
from studyaid.models.quiz import Quiz, QuizQuestion
from studyaid.models.job import Job

__all__ = ["Note", "Quiz", "QuizQuestion", "Job"]
