#!/usr/bin/env python3
"""strictify - strict TypeScript checks for changed files."""

from strictify.cli import main

if __name__ == "__main__":
    main()
