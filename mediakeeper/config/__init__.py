"""Модуль конфигурации.

Для доступа к настройкам используйте:
    from mediakeeper.config.settings import settings
    from mediakeeper.config.yaml_config import yaml_config

Для использования только классов настроек (без загрузки .env):
    from mediakeeper.config.models import EmailSettings
"""

# Не импортируем settings здесь, чтобы тесты могли импортировать
# другие модули из mediakeeper.config без загрузки .env файла.
