from __future__ import annotations

import pytest

from driververify.domain.verification.errors import ErrorCode
from driververify.domain.verification.results import ServiceResponse
from driververify.ui import cli as cli_module


def _recorder(
    captured: list[tuple[object, ...]], response: ServiceResponse[object]
) -> object:
    def fake(*args: object) -> ServiceResponse[object]:
        captured.append(args)
        return response

    return fake


def test_verify_document_passes_arguments(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[tuple[object, ...]] = []
    monkeypatch.setattr(
        cli_module,
        "verify_driver_document",
        _recorder(captured, ServiceResponse.ok({"status": "verified"})),
    )

    cli_module.main(["verify-document", "d1", "rc", "rejected", "--notes", "expired"])

    assert captured == [("d1", "rc", "rejected", "expired")]


def test_approve_and_reject(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[tuple[object, ...]] = []
    response = ServiceResponse.ok(None)
    monkeypatch.setattr(cli_module, "approve_driver", _recorder(captured, response))
    monkeypatch.setattr(cli_module, "reject_driver", _recorder(captured, response))

    cli_module.main(["approve", "d1"])
    cli_module.main(["reject", "d2", "--reason", "forged licence"])

    assert captured == [("d1", None), ("d2", "forged licence")]


def test_reject_requires_reason() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["reject", "d1"])

    assert excinfo.value.code == 2


def test_failed_response_exits_non_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: list[tuple[object, ...]] = []
    response: ServiceResponse[object] = ServiceResponse.fail(
        ErrorCode.DRIVER_NOT_FOUND, "Driver ghost not found"
    )
    monkeypatch.setattr(cli_module, "discover_driver_documents", _recorder(captured, response))

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["discover", "ghost"])

    assert excinfo.value.code == 1
    assert captured == [("ghost",)]


def test_unexpected_error_exits_non_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom() -> ServiceResponse[object]:
        raise RuntimeError("database locked")

    monkeypatch.setattr(cli_module, "resync_all_drivers", boom)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["resync-all"])

    assert excinfo.value.code == 1
