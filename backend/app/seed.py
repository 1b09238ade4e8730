"""Startup seed — club stock catalog, a few prediction markets and demo accounts.

Safe to run on every startup: anything that already exists is skipped.
"""

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from app.clock import utcnow
from app.config import settings
from app.models.market import Market, PREDICTION
from app.models.stock_meta import StockMeta
from app.models.user import User
from app.price_model import assign_pattern_type
from app.services import coin_service, market_service

logger = logging.getLogger(__name__)

# ticker, name, listing price, description
CLUBS = [
    ("MUN", "Model UN", 44, "Public speaking, debate and negotiation at conferences worldwide."),
    ("DEBAT", "Parliamentary Debate", 43, "A debate team ranked top 20 in the country."),
    ("MOCK", "Mock Trial", 42, "Courtroom procedure and regional competitions."),
    ("STAR", "Science Olympiad", 39, "Science, technology and robotics competitions."),
    ("ROBOT", "Robotics", 48, "Tinkering, engineering and VEX Robotics."),
    ("CODE", "Coding Club", 47, "Programming languages and software projects."),
    ("CYBER", "Cybersecurity Club", 43, "Digital security and CTF competitions."),
    ("AIML", "AI & Machine Learning", 50, "Artificial intelligence and machine learning projects."),
    ("INVST", "Investment Club", 46, "Stock market fundamentals and virtual portfolios."),
    ("DECA", "DECA", 40, "Business competitions at state and international conferences."),
    ("DRAMA", "Drama Club", 38, "Plays, musicals and the spring production."),
    ("ECO", "Climate Coalition", 33, "Sustainability projects and EcoAct Week."),
]

PREMIUM_CLUB = ("VIBE", "Vibe Club", 120, "The most exclusive club on campus.")

PREDICTION_MARKETS = [
    ("Will Robotics win at VEX States?", "Resolves YES if the Robotics club places 1st at the VEX State Championship.", "Clubs", 45),
    ("Will Drama Club's spring show sell out?", "Resolves YES if all tickets for the spring production are sold.", "Clubs", 30),
    ("Will Spirit Week have 80%+ participation?", "Resolves YES if more than 80% of students join at least one Spirit Week event.", "Events", 21),
    ("Will the average AP Calc score be above 4.0?", "Resolves YES if the class average on the AP Calculus exam exceeds 4.0.", "Academics", 120),
]

DEMO_ACCOUNTS = [
    ("demo.student1@clubexchange.test", "Demo Student 1", "Junior"),
    ("demo.student2@clubexchange.test", "Demo Student 2", "Senior"),
]


def seed_stocks(db: Session) -> int:
    existing = {t for (t,) in db.query(StockMeta.ticker).all()}
    created = 0
    catalog = list(CLUBS)
    if settings.PREMIUM_STOCK_ID:
        catalog.append(PREMIUM_CLUB)

    for index, (ticker, name, price, description) in enumerate(catalog):
        if ticker in existing:
            continue
        market_id = settings.PREMIUM_STOCK_ID if ticker == PREMIUM_CLUB[0] else None
        market_service.list_stock(
            db,
            ticker=ticker,
            name=name,
            description=description,
            initial_price=float(price),
            float_supply=10000,
            pattern_type=assign_pattern_type(index),
            market_id=market_id,
        )
        created += 1
    return created


def seed_prediction_markets(db: Session) -> int:
    existing = {t for (t,) in db.query(Market.title).filter(Market.market_type == PREDICTION).all()}
    created = 0
    for title, description, category, close_in_days in PREDICTION_MARKETS:
        if title in existing:
            continue
        market_service.create_prediction_market(
            db,
            title=title,
            description=description,
            category=category,
            close_at=utcnow() + timedelta(days=close_in_days),
        )
        created += 1
    return created


def seed_demo_accounts(db: Session) -> int:
    created = 0
    for email, name, grade in DEMO_ACCOUNTS:
        if db.query(User).filter(User.email == email).first():
            continue
        coin_service.open_account(db, email=email, display_name=name, grade=grade)
        created += 1
    return created


def seed_all(db: Session) -> None:
    stocks = seed_stocks(db)
    markets = seed_prediction_markets(db)
    accounts = seed_demo_accounts(db)
    logger.info("Seeded %d stocks, %d prediction markets, %d demo accounts", stocks, markets, accounts)
