"""Pivot Year - a 365-day guided journal synced to Firestore."""
