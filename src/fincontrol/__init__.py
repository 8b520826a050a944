"""
FinControl: ядро сверки личного финансового учёта.

Фиксированные расходы, покупки в рассрочку и учётные правила
(баланс, цели, категории, карты) поверх хранилища SQLAlchemy.
"""

__version__ = "2.0.0"
