"""
Константы приложения.
"""

# =====================================
# СЛОТЫ УВЕДОМЛЕНИЙ
# =====================================
SLOT_MORNING = "morning"
SLOT_DAY = "day"
SLOT_EVENING = "evening"
SLOT_REPORT = "report"
SLOT_MONTHLY_REPORT = "monthlyReport"

REMINDER_SLOTS = (SLOT_MORNING, SLOT_DAY, SLOT_EVENING)
REPORT_SLOTS = (SLOT_REPORT, SLOT_MONTHLY_REPORT)
ALL_SLOTS = REMINDER_SLOTS + REPORT_SLOTS

# =====================================
# ЧАСТОТА НАПОМИНАНИЙ
# =====================================
FREQUENCY_OFF = "off"
FREQUENCY_RARE = "rare"
FREQUENCY_STANDARD = "standard"
FREQUENCY_OFTEN = "often"

REMINDER_FREQUENCIES = (
    FREQUENCY_OFF,
    FREQUENCY_RARE,
    FREQUENCY_STANDARD,
    FREQUENCY_OFTEN,
)

# ISO дни недели (понедельник = 1) для частоты "rare": вторник и пятница
RARE_WEEKDAYS = (2, 5)

# =====================================
# АНАЛИЗ ЦИТАТ
# =====================================
SENTIMENT_POSITIVE = "positive"
SENTIMENT_NEUTRAL = "neutral"
SENTIMENT_NEGATIVE = "negative"

SENTIMENTS = (SENTIMENT_POSITIVE, SENTIMENT_NEUTRAL, SENTIMENT_NEGATIVE)

MAX_QUOTE_THEMES = 3
DEFAULT_THEME = "размышления"
DEFAULT_INSIGHT = "Интересная мысль для размышления"

FALLBACK_THEME = "жизненный опыт"
FALLBACK_INSIGHT = "Глубокая мысль для размышления"

# =====================================
# КАТЕГОРИИ
# =====================================
CATEGORY_OTHER = "ДРУГОЕ"

# Канонический каталог: используется для первичного заполнения таблицы
# categories и как запасной вариант, если БД недоступна
CANONICAL_CATEGORIES = [
    {
        "name": "КРИЗИСЫ",
        "synonyms": ["кризис", "трудности", "проблемы", "преодоление", "борьба"],
        "keywords": ["кризис", "трудност", "проблем", "преодоле", "борьб"],
        "priority": 10,
    },
    {
        "name": "Я — ЖЕНЩИНА",
        "synonyms": ["женщина", "женственность", "женская сила", "материнство", "красота"],
        "keywords": ["женщин", "женственност", "материнств", "красот"],
        "priority": 9,
    },
    {
        "name": "ЛЮБОВЬ",
        "synonyms": ["любовь", "страсть", "романтика", "влюбленность", "сердце", "чувства"],
        "keywords": ["любов", "любить", "страст", "романтик", "влюбленност", "сердц", "чувств"],
        "priority": 9,
    },
    {
        "name": "ОТНОШЕНИЯ",
        "synonyms": ["отношения", "дружба", "общение", "связь", "близость"],
        "keywords": ["отношени", "дружб", "общени", "связь", "взаимодействи", "близост"],
        "priority": 8,
    },
    {
        "name": "ДЕНЬГИ",
        "synonyms": ["деньги", "богатство", "финансы", "успех", "карьера"],
        "keywords": ["деньг", "богатств", "финанс", "успех", "материальн", "карьер"],
        "priority": 8,
    },
    {
        "name": "ОДИНОЧЕСТВО",
        "synonyms": ["одиночество", "уединение", "самостоятельность", "независимость"],
        "keywords": ["одиночеств", "уединени", "самостоятельност", "независимост"],
        "priority": 7,
    },
    {
        "name": "СМЕРТЬ",
        "synonyms": ["смерть", "конечность", "бренность", "утрата", "потеря"],
        "keywords": ["смерть", "конечност", "бренност", "утрат", "потер"],
        "priority": 6,
    },
    {
        "name": "СЕМЕЙНЫЕ ОТНОШЕНИЯ",
        "synonyms": ["семья", "родители", "дети", "родственники", "воспитание"],
        "keywords": ["семь", "родител", "дети", "родственник", "семейн", "воспитани"],
        "priority": 8,
    },
    {
        "name": "СМЫСЛ ЖИЗНИ",
        "synonyms": ["смысл жизни", "предназначение", "цель", "призвание", "философия"],
        "keywords": ["смысл", "предназначени", "цель", "миссия", "призвани", "философи"],
        "priority": 9,
    },
    {
        "name": "СЧАСТЬЕ",
        "synonyms": ["счастье", "радость", "удовольствие", "позитив", "эмоции"],
        "keywords": ["счасть", "радост", "веселье", "удовольстви", "блаженств", "позитив"],
        "priority": 8,
    },
    {
        "name": "ВРЕМЯ И ПРИВЫЧКИ",
        "synonyms": ["время", "привычки", "рутина", "планирование", "дисциплина"],
        "keywords": ["время", "привычк", "рутин", "организаци", "планировани", "дисциплин"],
        "priority": 7,
    },
    {
        "name": "ДОБРО И ЗЛО",
        "synonyms": ["добро", "зло", "мораль", "этика", "справедливость"],
        "keywords": ["добро", "зло", "мораль", "этик", "справедливост", "нравственност"],
        "priority": 6,
    },
    {
        "name": "ОБЩЕСТВО",
        "synonyms": ["общество", "социум", "люди", "человечество", "цивилизация"],
        "keywords": ["общество", "социум", "люди", "человечеств", "цивилизаци"],
        "priority": 7,
    },
    {
        "name": "ПОИСК СЕБЯ",
        "synonyms": ["самопознание", "саморазвитие", "поиск себя", "личностный рост", "мышление"],
        "keywords": ["самопознани", "саморазвити", "поиск", "путь", "рост", "развити", "познани"],
        "priority": 9,
    },
    {
        "name": CATEGORY_OTHER,
        "synonyms": ["другое", "прочее", "иное", "разное"],
        "keywords": [],
        "priority": 1,
    },
]

# =====================================
# ДОСТИЖЕНИЯ
# =====================================
ACHIEVEMENT_QUOTES_COUNT = "quotes_count"
ACHIEVEMENT_STREAK_DAYS = "streak_days"
ACHIEVEMENT_CLASSICS_COUNT = "classics_count"
ACHIEVEMENT_OWN_THOUGHTS = "own_thoughts"
ACHIEVEMENT_CATEGORY_DIVERSITY = "category_diversity"
ACHIEVEMENT_DAYS_WITH_BOT = "days_with_bot"

CLASSIC_AUTHORS = (
    "Толстой", "Лев Толстой", "Л. Толстой",
    "Достоевский", "Федор Достоевский", "Ф. Достоевский",
    "Пушкин", "Александр Пушкин", "А. Пушкин",
    "Чехов", "Антон Чехов", "А. Чехов",
    "Тургенев", "Иван Тургенев", "И. Тургенев",
    "Гоголь", "Николай Гоголь", "Н. Гоголь",
    "Лермонтов", "Михаил Лермонтов", "М. Лермонтов",
)

# =====================================
# ОТЧЁТЫ
# =====================================
GENERATION_METHOD_WEEKLY = "weekly_reports"
GENERATION_METHOD_TOP_QUOTES = "top_quotes"

TREND_GROWING = "растущая"
TREND_STABLE = "стабильная"
TREND_CHANGING = "меняющаяся"
TREND_MIXED = "смешанная"

# Шкала эмоционального тона недели: от меланхолии к энергии
TONE_SCALE = (
    "меланхоличный",
    "задумчивый",
    "размышляющий",
    "нейтральный",
    "позитивный",
    "вдохновляющий",
    "энергичный",
)

DEFAULT_TONE = "нейтральный"
MAX_TOP_THEMES = 5
MAX_OFFER_BOOKS = 3

PROMO_CODES = ("READER25", "WISDOM25", "QUOTES25", "BOOKS25")

# Оценка отчёта пользователем
MIN_FEEDBACK_RATING = 1
MAX_FEEDBACK_RATING = 5

FALLBACK_MONTHLY_ANALYSIS = {
    "monthlyEvolution": "Этот месяц показал ваш интерес к глубоким темам.",
    "deepPatterns": "Прослеживается стремление к самопознанию.",
    "psychologicalInsight": "Вы находитесь в процессе внутреннего роста.",
    "recommendations": "Продолжайте изучать себя через литературу.",
    "bookSuggestions": ["Искусство любить", "Быть собой", "Письма к молодому поэту"],
}

# =====================================
# ЛИМИТЫ
# =====================================
MAX_FAVORITE_AUTHORS = 10
MAX_MESSAGE_LENGTH = 4000
MAX_CAPTION_LENGTH = 1024

# =====================================
# ЭМОДЗИ
# =====================================
EMOJI_BOOK = "📖"
EMOJI_STAR = "⭐"
EMOJI_SPARKLE = "✨"
EMOJI_CHECK = "✅"
EMOJI_FIRE = "🔥"
EMOJI_CHART = "📊"
EMOJI_TROPHY = "🏆"
