"""Event submission and the approval workflow."""
