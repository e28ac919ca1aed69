"""Release tracking and version resolution for the docs proxy."""
