"""Starter catalogue: task sequences per language, merch items and the admin account.

Every step is idempotent: tasks are upserted by ``(language, position)``, shop
items are only inserted into an empty shop, and the admin user is only created
when no admin exists.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select

from questmap.auth.password import hash_password
from questmap.config import Settings, get_settings
from questmap.database import LedgerStore
from questmap.db.models import ROLE_ADMIN, TASK_TYPE_QUIZ, TASK_TYPE_SURVEY, ShopItem, Task, User

logger = logging.getLogger(__name__)


def _quiz(title: str, description: str, question: str, options: list[str], answer: str, reward: int) -> dict[str, Any]:
    return {
        "title": title,
        "description": description,
        "type": TASK_TYPE_QUIZ,
        "question": question,
        "options": options,
        "questions": [],
        "correct_answer": answer,
        "reward": reward,
    }


def _survey(title: str, description: str, question: str, start: str, questions: list[dict], reward: int) -> dict[str, Any]:
    return {
        "title": title,
        "description": description,
        "type": TASK_TYPE_SURVEY,
        "question": question,
        "options": [start],
        "questions": questions,
        "correct_answer": "",
        "reward": reward,
    }


TASK_SEED_DATA: dict[str, list[dict[str, Any]]] = {
    "en": [
        _survey(
            "Survey: Profile",
            "Tell us about yourself",
            "Let's get to know you",
            "Start",
            [
                {"type": "text", "text": "Which university do you attend?", "options": []},
                {
                    "type": "choice",
                    "text": "What is your field of study?",
                    "options": ["Computer Science", "Engineering", "Mathematics", "Physics", "Other"],
                },
                {
                    "type": "choice",
                    "text": "Which internship program are you interested in?",
                    "options": ["Frontend Development", "Backend Development", "Data Science", "DevOps", "QA"],
                },
            ],
            50,
        ),
        _quiz("Level 1: Basics", "Learn the basics of Go",
              "What is the keyword to define a variable in Go?", ["var", "let", "const", "def"], "var", 100),
        _quiz("Level 2: Functions", "Functions in Go",
              "How do you define a function in Go?", ["func", "function", "def", "fn"], "func", 150),
        _quiz("Level 3: Structs", "Working with structs",
              "Which keyword is used to define a struct?", ["struct", "class", "object", "type"], "type", 200),
        _quiz("Level 4: Interfaces", "Interfaces in Go",
              "Are interfaces implicit or explicit in Go?", ["Implicit", "Explicit", "Both", "None"], "Implicit", 250),
    ],
    "ru": [
        _survey(
            "Опрос: Профиль",
            "Расскажите о себе",
            "Давайте познакомимся",
            "Начать",
            [
                {"type": "text", "text": "В каком университете вы учитесь?", "options": []},
                {
                    "type": "choice",
                    "text": "Какое у вас направление?",
                    "options": ["Информатика", "Инженерия", "Математика", "Физика", "Другое"],
                },
                {
                    "type": "choice",
                    "text": "Какая стажировка вас интересует?",
                    "options": ["Frontend", "Backend", "Data Science", "DevOps", "QA"],
                },
            ],
            50,
        ),
        _quiz("Уровень 1: Основы", "Основы Go",
              "Какое ключевое слово используется для определения переменной в Go?",
              ["var", "let", "const", "def"], "var", 100),
        _quiz("Уровень 2: Функции", "Функции в Go",
              "Как определить функцию в Go?", ["func", "function", "def", "fn"], "func", 150),
        _quiz("Уровень 3: Структуры", "Работа со структурами",
              "Какое ключевое слово используется для определения структуры?",
              ["struct", "class", "object", "type"], "type", 200),
        _quiz("Уровень 4: Интерфейсы", "Интерфейсы в Go",
              "Являются ли интерфейсы в Go неявными или явными?",
              ["Неявными", "Явными", "И теми и другими", "Никакими"], "Неявными", 250),
        _quiz("Уровень 5: Горутины", "Параллельное программирование в Go",
              "Как запустить горутину?",
              ["go func()", "async func()", "thread func()", "spawn func()"], "go func()", 300),
        _quiz("Уровень 6: Каналы", "Коммуникация между горутинами",
              "Как создать канал в Go?",
              ["make(chan int)", "new(chan int)", "chan int{}", "create channel"], "make(chan int)", 350),
        _survey(
            "Опрос: Карьера",
            "Узнаем о ваших карьерных целях",
            "Расскажите о своих планах",
            "Продолжить",
            [
                {
                    "type": "choice",
                    "text": "Какой формат работы вам подходит?",
                    "options": ["Офис", "Удалёнка", "Гибрид", "Пока не знаю"],
                },
                {"type": "text", "text": "Какие технологии вы уже изучали?", "options": []},
                {"type": "choice", "text": "Готовы ли вы к переезду?", "options": ["Да", "Нет", "Возможно"]},
            ],
            200,
        ),
        _quiz("Уровень 8: Ошибки", "Обработка ошибок в Go",
              "Как обычно обрабатывают ошибки в Go?",
              ["if err != nil", "try-catch", "throw-catch", "error handler"], "if err != nil", 400),
        _quiz("Уровень 9: Указатели", "Работа с указателями",
              "Как получить адрес переменной x?", ["&x", "*x", "ref(x)", "addr(x)"], "&x", 450),
        _quiz("Уровень 10: Слайсы", "Динамические массивы в Go",
              "Как добавить элемент в слайс?",
              ["append(slice, elem)", "slice.push(elem)", "slice.add(elem)", "slice += elem"],
              "append(slice, elem)", 500),
    ],
}

SHOP_SEED_DATA: list[dict[str, Any]] = [
    {"name": "Футболка", "description": "Фирменная футболка с логотипом", "price": 1500, "image": "👕", "stock": 50},
    {"name": "Худи", "description": "Тёплое худи с принтом", "price": 2500, "image": "🧥", "stock": 30},
    {"name": "Кепка", "description": "Стильная кепка с вышивкой", "price": 800, "image": "🧢", "stock": 100},
    {"name": "Стикерпак", "description": "Набор фирменных стикеров", "price": 300, "image": "🎨", "stock": 200},
    {"name": "Термокружка", "description": "Кружка с логотипом", "price": 600, "image": "☕", "stock": 75},
    {"name": "Рюкзак", "description": "Практичный рюкзак для ноутбука", "price": 3000, "image": "🎒", "stock": 25},
]


async def seed_tasks(store: LedgerStore) -> int:
    """Upsert the starter sequences. Returns the number of tasks written."""
    written = 0
    async with store.transaction() as db:
        for language, tasks in TASK_SEED_DATA.items():
            for position, data in enumerate(tasks):
                result = await db.execute(
                    select(Task).where(Task.language == language, Task.position == position).limit(1)
                )
                task = result.scalar_one_or_none()
                if task is None:
                    db.add(Task(language=language, position=position, **data))
                else:
                    for key, value in data.items():
                        setattr(task, key, value)
                written += 1
    logger.info("Seeded %d tasks across %d languages", written, len(TASK_SEED_DATA))
    return written


async def seed_shop(store: LedgerStore) -> int:
    """Insert merch items into an empty shop. Existing stock is left alone."""
    async with store.transaction() as db:
        existing = (await db.execute(select(func.count(ShopItem.id)))).scalar() or 0
        if existing:
            return 0
        db.add_all([ShopItem(**data) for data in SHOP_SEED_DATA])
    logger.info("Seeded %d shop items", len(SHOP_SEED_DATA))
    return len(SHOP_SEED_DATA)


async def seed_admin(store: LedgerStore, settings: Settings) -> bool:
    """Create the admin account if no admin exists. Returns True when created."""
    async with store.transaction() as db:
        admins = (await db.execute(select(func.count(User.id)).where(User.role == ROLE_ADMIN))).scalar() or 0
        if admins:
            return False
        db.add(
            User(
                username=settings.admin_username,
                first_name="Admin",
                last_name="User",
                role=ROLE_ADMIN,
                password_hash=hash_password(settings.admin_password),
            )
        )
    logger.info("Seeded admin user (login: %s)", settings.admin_username)
    return True


async def seed_catalog(store: LedgerStore, settings: Settings | None = None) -> None:
    """Seed tasks, shop items and the admin account."""
    settings = settings or get_settings()
    await seed_tasks(store)
    await seed_shop(store)
    await seed_admin(store, settings)
