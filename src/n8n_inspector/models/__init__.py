"""Typed models for raw n8n payloads and derived inspection views."""
