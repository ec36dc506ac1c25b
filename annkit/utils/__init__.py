"""Utility modules for annkit."""
