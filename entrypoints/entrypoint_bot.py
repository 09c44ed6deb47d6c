#!/usr/bin/env python3
# entrypoint_bot.py
"""
Точка входа контейнера: запуск Telegram бота.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Корень проекта в sys.path, чтобы импортировать main
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

from main import main


if __name__ == "__main__":
    try:
        asyncio.run(main(mode="bot"))
    except KeyboardInterrupt:
        print("\nПолучен сигнал остановки, завершение работы...")
