"""Course enrollments and their status lifecycle."""
