"""
Сервисы, поднимаемые как отдельные процессы.
"""
