"""Admissions CRM: lead intake, counselor assignment and presence tracking."""
