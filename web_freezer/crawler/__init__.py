# File: web_freezer/crawler/__init__.py
"""web_freezer.crawler: безопасная загрузка, поиск страниц и оркестратор обхода."""
