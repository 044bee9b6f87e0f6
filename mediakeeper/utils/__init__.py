"""Вспомогательные утилиты: логирование и работа с часовыми поясами."""
