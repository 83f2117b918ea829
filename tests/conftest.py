import pytest
from typing import AsyncGenerator, Dict, List, Optional, Tuple
from httpx import AsyncClient, ASGITransport
from fastapi import FastAPI
from asgi_lifespan import LifespanManager

from app.core.config import Settings
from app.core.s3 import S3Service, StorageError, get_s3_service
from app.crud import user as user_crud
from app.db.models import UserPlan, UserRole
from app.schemas.user import UserRegister
from app.services.ai_service import AIService, CompletionResult, get_ai_service
from main import create_app


class FakeS3Service(S3Service):
    """In-memory object store keeping the real key scheme."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.objects: Dict[str, bytes] = {}
        self.fail_uploads = False

    async def upload_bytes(self, body: bytes, file_key: str, content_type: str) -> None:
        if self.fail_uploads:
            raise StorageError(f"Failed to upload {file_key}")
        self.objects[file_key] = body

    async def delete_file(self, file_key: str) -> bool:
        return self.objects.pop(file_key, None) is not None

    async def generate_presigned_url(self, file_key: str, expiration: Optional[int] = None) -> Optional[str]:
        return f"https://storage.test/{file_key}?expires={expiration or self.presigned_expiration}"

    async def check_connection(self) -> bool:
        return True


class FakeAIService(AIService):
    """Completion service that answers instantly and records its prompts."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.calls: List[Tuple[str, Optional[str]]] = []

    async def generate_response(self, prompt: str, case_context: Optional[str] = None) -> CompletionResult:
        self.calls.append((prompt, case_context))
        return CompletionResult(
            response=f"Regarding your question: {prompt}",
            model="fake-legal-model",
            tokens=42,
            response_time=7,
        )

    async def check_connection(self) -> bool:
        return True


class FakeRedis:
    """In-memory counters with the slice of the Redis API the rate limiter uses."""

    def __init__(self):
        self.counts: Dict[str, int] = {}
        self.ttls: Dict[str, int] = {}

    def pipeline(self) -> "FakePipeline":
        return FakePipeline(self)

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return True

    async def aclose(self) -> None:
        pass


class FakePipeline:
    def __init__(self, redis: FakeRedis):
        self.redis = redis
        self.ops: List[Tuple[str, str]] = []

    def incr(self, key: str) -> "FakePipeline":
        self.ops.append(("incr", key))
        return self

    def ttl(self, key: str) -> "FakePipeline":
        self.ops.append(("ttl", key))
        return self

    async def execute(self) -> list:
        results = []
        for op, key in self.ops:
            if op == "incr":
                self.redis.counts[key] = self.redis.counts.get(key, 0) + 1
                results.append(self.redis.counts[key])
            else:
                results.append(self.redis.ttls.get(key, -1))
        self.ops.clear()
        return results


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite database."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        JWT_SECRET="test-secret",
        OPENAI_API_KEY="",
        ENABLE_RESPONSE_COMPRESSION=False,
        LOG_LEVEL="WARNING",
        RATE_LIMIT_MAX_REQUESTS=1000,
    )


@pytest.fixture
def fake_s3(test_settings) -> FakeS3Service:
    return FakeS3Service(test_settings)


@pytest.fixture
def fake_ai(test_settings) -> FakeAIService:
    return FakeAIService(test_settings)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
async def test_app(test_settings, fake_s3, fake_ai, fake_redis) -> AsyncGenerator[FastAPI, None]:
    """Create a test instance of the FastAPI application."""
    app = create_app(test_settings)
    app.state.redis = fake_redis
    app.dependency_overrides[get_s3_service] = lambda: fake_s3
    app.dependency_overrides[get_ai_service] = lambda: fake_ai
    async with LifespanManager(app):
        yield app


@pytest.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=test_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(test_app):
    """A session on the application's database, for direct store access."""
    async with test_app.state.database.session() as session:
        yield session


@pytest.fixture
def test_password() -> str:
    return "test_password123"


@pytest.fixture
def test_user_data(test_password) -> dict:
    return {
        "name": "Jane Counsel",
        "email": "jane@example.com",
        "password": test_password,
        "lawFirm": "Counsel & Partners",
    }


@pytest.fixture
def register_user(client, test_password):
    """Factory registering a lawyer and returning (auth headers, user payload)."""
    counter = {"n": 0}

    async def _register(email: Optional[str] = None, **overrides) -> Tuple[dict, dict]:
        counter["n"] += 1
        payload = {
            "name": f"Lawyer {counter['n']}",
            "email": email or f"lawyer{counter['n']}@example.com",
            "password": test_password,
            "lawFirm": "Example Legal LLP",
            **overrides,
        }
        response = await client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return {"Authorization": f"Bearer {data['token']}"}, data["user"]

    return _register


@pytest.fixture
async def auth_headers(register_user) -> dict:
    headers, _ = await register_user(email="owner@example.com")
    return headers


@pytest.fixture
async def admin_headers(client, test_app, test_password) -> dict:
    async with test_app.state.database.session() as db:
        await user_crud.create_user(
            db,
            UserRegister(name="Site Admin", email="admin@example.com", password=test_password, law_firm="LawCaseAI"),
            role=UserRole.admin,
            plan=UserPlan.enterprise,
        )
    response = await client.post(
        "/api/auth/login", json={"email": "admin@example.com", "password": test_password}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


@pytest.fixture
def case_data() -> dict:
    return {
        "name": "Smith v. Jones",
        "client": "Jane Smith",
        "description": "Contract dispute",
    }


@pytest.fixture
def create_case(client, case_data):
    async def _create(headers: dict, **overrides) -> dict:
        response = await client.post("/api/cases", json={**case_data, **overrides}, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create
