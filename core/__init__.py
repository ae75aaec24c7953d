"""core/ -- Configuration, database plumbing, error kinds, and input validation."""
