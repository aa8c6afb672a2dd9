import pytest

from yakka_chat.scripts import sweep as sweep_script


@pytest.mark.asyncio
async def test_single_run_reports_counts(services, mocker, capsys) -> None:
    mocker.patch.object(sweep_script, "build_services", return_value=services)

    assert await sweep_script.run(forever=False) == 0

    assert "Scanned 0 messages, flagged 0, banned 0 users" in capsys.readouterr().out
