"""
CampusNews Ingestion Module
===========================

Feed retrieval and per-item processing components.

This module handles:
- Feed fetching and parsing
- Source specific transforms
- Dedup against stored links
- Image selection and registration
- Description sanitization
"""
