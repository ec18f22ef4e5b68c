"""
Image Proxy 测试配置文件

这个文件包含 pytest fixtures（测试夹具）。
上游图片服务器由 FakeFetcher 模拟，测试不访问真实网络。

关键概念：
- FakeFetcher：按测试需要返回指定响应、抛出异常或故意变慢
- strict_config / lenient_config：两种代理模式的配置
- make_client：用指定配置和 fetcher 构建 FastAPI TestClient
"""

import asyncio
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# 添加 backend 目录到 Python 路径
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from card_image_proxy.app import create_app
from card_image_proxy.config import ProxyConfig
from card_image_proxy.models import UpstreamResponse


PNG_URL = "https://en.onepiece-cardgame.com/images/cardlist/card/OP01-001.png"


# ============================================
# Fake Upstream
# ============================================

class FakeFetcher:
    """
    模拟上游服务器的 fetcher。

    使用方式：
    ```python
    fetcher = FakeFetcher(image_response())
    fetcher = FakeFetcher(error=httpx.ConnectError("refused"))
    fetcher = FakeFetcher(image_response(), delay=5)
    ```
    """

    def __init__(self, response=None, error=None, delay=0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls = []
        self.cancelled = False
        self.closed = False

    async def fetch(self, url, headers):
        self.calls.append((url, dict(headers)))
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                # 超时后请求必须被真正取消，而不是被遗弃
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return self.response

    async def aclose(self):
        self.closed = True


def image_response(size=2000, content_type="image/png", status_code=200, reason="OK"):
    """构造一个上游响应，body 为固定字节序列"""
    body = bytes(i % 256 for i in range(size))
    return UpstreamResponse(
        status_code=status_code,
        reason=reason,
        content_type=content_type,
        body=body,
    )


# ============================================
# Config Fixtures
# ============================================

@pytest.fixture
def strict_config():
    """域名白名单 + 拒绝非图片"""
    return ProxyConfig.strict(timeout_seconds=0.2)


@pytest.fixture
def lenient_config():
    """任意 http/https 域名，非图片只记录警告"""
    return ProxyConfig.lenient(timeout_seconds=0.2)


@pytest.fixture
def png_fetcher():
    return FakeFetcher(image_response())


# ============================================
# Client Fixtures
# ============================================

@pytest.fixture
def make_client():
    """
    构建 TestClient，测试结束后自动关闭（触发 lifespan 清理）。

    使用方式：
    ```python
    def test_x(make_client, strict_config):
        client = make_client(strict_config, FakeFetcher(image_response()))
        response = client.get("/api/img", params={"src": PNG_URL})
    ```
    """
    clients = []

    def _make(config, fetcher):
        client = TestClient(create_app(config=config, fetcher=fetcher))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


# ============================================
# Helper Functions
# ============================================

def assert_error_response(response, status_code, error_contains=None):
    """
    断言代理返回了 JSON 错误。

    使用方式：
    ```python
    assert_error_response(response, 400, "required")
    ```
    """
    assert response.status_code == status_code, \
        f"Expected {status_code}, got {response.status_code}: {response.text}"
    body = response.json()
    assert "error" in body
    if error_contains:
        assert error_contains.lower() in body["error"].lower(), \
            f"Error message should contain '{error_contains}', got: {body['error']}"
    assert response.headers["access-control-allow-origin"] == "*"
