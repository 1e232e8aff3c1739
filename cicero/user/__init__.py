"""User profiles and their resolution."""
