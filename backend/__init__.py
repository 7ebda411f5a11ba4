"""Sage SRS backend: scheduler, configuration and study API."""
