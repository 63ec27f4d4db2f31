import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault("TESTING", "true")

import pytest
import uuid
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from app.core.config import settings
from app.core.constants import LanguageEnum, RoleEnum
from app.core.database import Base, get_db
from app.models.question import Question
from app.models.subscription import SubscriptionPlan, UserSubscription
from app.models.product import DigitalProduct
from app.models.user import User
from app.utils import deps as deps_utils
from tests.helpers.factories import FakeClock, FakeGateway, make_options
import main

test_db_url = settings.TEST_DATABASE_URL or "sqlite:///./test.db"


@pytest.fixture(scope="session")
def database_engine():
    if test_db_url.startswith("sqlite"):
        engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(test_db_url)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    if test_db_url.startswith("sqlite"):
        os.remove("./test.db")

@pytest.fixture(scope="session")
def session_factory(database_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=database_engine)

@pytest.fixture(scope="function")
def db_session(session_factory, database_engine):
    db = session_factory()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        with database_engine.begin() as connection:
            for table in reversed(Base.metadata.sorted_tables):
                connection.execute(table.delete())

@pytest.fixture
def fake_gateway():
    return FakeGateway()

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture(scope="function")
def client(db_session, fake_gateway):
    # Re-initialize the app for each test function to ensure a clean state
    from importlib import reload
    reload(main)
    main.app.dependency_overrides[get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_payment_gateway] = lambda: fake_gateway
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture
def user_factory(db_session):
    def _user_factory(role: RoleEnum = RoleEnum.USER, email=None, is_active=True):
        test_user = User(
            full_name="Test Candidate",
            email=email or f"user-{uuid.uuid4().hex[:8]}@test.com",
            role=role.value,
            is_active=is_active,
        )
        db_session.add(test_user)
        db_session.commit()
        db_session.refresh(test_user)
        return test_user
    return _user_factory

@pytest.fixture
def user(user_factory):
    return user_factory()

@pytest.fixture
def admin_user(user_factory):
    return user_factory(role=RoleEnum.ADMIN)

@pytest.fixture
def question_factory(db_session):
    def _question_factory(language: str = LanguageEnum.ENGLISH.value, picture: bool = False,
                          correct: int = 0, is_active: bool = True):
        q = Question(
            language=language,
            text=f"What does this road sign mean? {uuid.uuid4().hex[:6]}",
            image_url="https://cdn.test/questions/sign.png" if picture else None,
            options=make_options(correct),
            explanation="Refer to the highway code.",
            is_active=is_active,
        )
        db_session.add(q)
        db_session.commit()
        db_session.refresh(q)
        return q
    return _question_factory

@pytest.fixture
def seed_bank(question_factory):
    def _seed_bank(language: str = LanguageEnum.ENGLISH.value, pictures: int = 4, texts: int = 16):
        created = [question_factory(language=language, picture=True, correct=i % 4) for i in range(pictures)]
        created += [question_factory(language=language, picture=False, correct=i % 4) for i in range(texts)]
        return created
    return _seed_bank


@pytest.fixture
def plan_factory(db_session):
    def _plan_factory(plan_type=None, exam_limit=5, duration_days=None, price=2000):
        plan = SubscriptionPlan(
            type=plan_type or f"plan-{uuid.uuid4().hex[:6]}",
            name={"en": "Exam pack", "fr": "Pack d'examens", "rw": "Ibizamini"},
            description={"en": "Practice exams", "fr": "Examens blancs", "rw": "Ibizamini byo kwitoza"},
            pricing={"en": price, "fr": price, "rw": price},
            duration_days=duration_days,
            exam_limit=exam_limit,
            is_active=True,
        )
        db_session.add(plan)
        db_session.commit()
        db_session.refresh(plan)
        return plan
    return _plan_factory

@pytest.fixture
def subscription_factory(db_session):
    def _subscription_factory(user: User, plan: SubscriptionPlan, used: int = 0,
                              start_date: datetime = None, end_date: datetime = None, is_active: bool = True):
        start_date = start_date or datetime.utcnow() - timedelta(days=1)
        subscription = UserSubscription(
            user_id=user.id,
            plan_id=plan.id,
            start_date=start_date,
            end_date=end_date or datetime.utcnow() + timedelta(days=30),
            exam_attempts_used=used,
            is_active=is_active,
        )
        db_session.add(subscription)
        db_session.commit()
        db_session.refresh(subscription)
        return subscription
    return _subscription_factory

@pytest.fixture
def product_factory(db_session):
    def _product_factory(price=1500, is_active=True):
        product = DigitalProduct(
            title="Road signs handbook",
            description="All road signs with explanations",
            product_type="road_signs",
            language="en",
            price=price,
            file_url="https://cdn.test/products/handbook.pdf",
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product
    return _product_factory
