"""Utility modules for the WhatsApp Google Uploader."""
