"""Backup, validation, restore and retention."""
