"""Task-generation pipeline: snapshot → catalog → prompt → model → validation."""
