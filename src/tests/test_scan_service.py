import httpx
import pytest

from engine.config import Settings, load_settings
from engine.errors import InsufficientSelectionError
from engine.models import ComparisonStatus
from engine.scan_service import ScanService
from tools.audit_adapter import HttpAuditAdapter
from tools.task_notifier import SimulatedTaskNotifier, WebhookTaskNotifier
from factories import FakeAnalyzer, result, vuln


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("AUDITYZER_PAGE_SIZE", "25")
    monkeypatch.setenv("AUDITYZER_ACTIVITY_LOG_LIMIT", "not-a-number")
    monkeypatch.setenv("AUDITYZER_NOTIFIER", "Webhook")
    monkeypatch.setenv("AUDITYZER_WEBHOOK_URL", "http://hooks.local/tasks")
    monkeypatch.setenv("AUDITYZER_ASANA_PROJECT_ID", " proj-1 ")
    monkeypatch.setenv("AUDITYZER_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.page_size == 25
    assert settings.activity_log_limit == 50
    assert settings.notifier == "webhook"
    assert settings.asana_project_id == "proj-1"
    assert settings.monday_project_id is None
    assert settings.log_level == "DEBUG"


def test_service_from_settings_wires_adapters_and_targets():
    service = ScanService.from_settings(Settings(asana_project_id="proj-1", page_size=5, notify_delay=0))

    assert isinstance(service.job_manager.analyzer, HttpAuditAdapter)
    assert isinstance(service.job_manager.notifier, SimulatedTaskNotifier)
    assert [t.name for t in service.integrations.connected_targets()] == ["Asana"]
    assert service.query.page_size == 5


def test_service_uses_webhook_notifier_when_configured():
    service = ScanService.from_settings(
        Settings(notifier="webhook", webhook_url="http://hooks.local/tasks"), analyzer=FakeAnalyzer()
    )

    assert isinstance(service.job_manager.notifier, WebhookTaskNotifier)


@pytest.mark.asyncio
async def test_compare_selected_orders_oldest_first_and_skips_unfinished(job_manager, analyzer):
    analyzer.results["0xA"] = result(vuln("High", "Overflow"))
    analyzer.results["0xB"] = result(vuln("Low", "Gas"))
    analyzer.fail("0xC")
    service = ScanService(job_manager)

    first = await job_manager.scan("0xA")
    second = await job_manager.scan("0xB")
    failed = job_manager.submit("0xC")
    await job_manager.drain()

    for job in (second, failed, first):
        service.toggle_selection(job.id)
    comparisons = service.compare()

    assert [c.job.id for c in comparisons] == [first.id, second.id]
    assert [(v.title, v.comparison_status) for v in comparisons[1].vulnerabilities] == [
        ("Overflow", ComparisonStatus.RESOLVED),
        ("Gas", ComparisonStatus.NEW),
    ]


@pytest.mark.asyncio
async def test_compare_rejects_short_or_unfinished_selection(job_manager, analyzer):
    analyzer.fail("0xC")
    service = ScanService(job_manager)
    done = await job_manager.scan("0xA")
    failed = job_manager.submit("0xC")
    await job_manager.drain()

    service.toggle_selection(done.id)
    with pytest.raises(InsufficientSelectionError):
        service.compare()
    with pytest.raises(InsufficientSelectionError):
        service.compare([done.id, failed.id])


@pytest.mark.asyncio
async def test_aclose_skips_adapters_without_clients(job_manager):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    job_manager.analyzer = HttpAuditAdapter("http://audit.local", client=http_client)
    service = ScanService(job_manager)

    await service.aclose()

    assert http_client.is_closed
