"""Адаптеры внешних систем.

- identity/ — админские клиенты медиасерверов (Jellyfin, Emby)
- mail/ — отправка писем (SMTP)
"""
