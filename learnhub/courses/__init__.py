"""Courses and their ordered lessons."""
