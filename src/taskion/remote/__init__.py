"""
Remote record service adapters.

Components:
- properties.py: tagged-variant parsing of Notion page properties
- notion_client.py: live HTTP adapter (httpx)
- offline.py: disabled adapter used when credentials are missing
"""
