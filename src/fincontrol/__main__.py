"""
Точка входа для запуска через python -m fincontrol [user_id]
"""
from fincontrol.app import run

if __name__ == "__main__":
    run()
