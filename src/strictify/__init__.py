"""strictify - ratchet stricter TypeScript checks onto changed files."""

__version__ = "0.1.0"
