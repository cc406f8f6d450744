"""Quizpool: polls, reward quizzes and reward claims over a FastAPI service."""
