# File: web_freezer/parser/__init__.py
"""web_freezer.parser: извлечение ссылок из HTML, CSS и sitemap."""
