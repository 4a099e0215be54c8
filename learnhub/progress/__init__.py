"""Lesson completion tracking and course progress."""
