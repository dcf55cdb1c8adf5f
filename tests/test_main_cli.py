from __future__ import annotations

from unittest.mock import patch

import pytest
from fakes import FakeProvider, resource_list

from meshauthz.authz.models import AccessVerdict


def _patched_checker(provider):
    from meshauthz.authz.checks import AccessChecker

    return patch("main._build_checker", return_value=AccessChecker(provider))


def test_main_runs_selected_checks(capsys: pytest.CaptureFixture[str]) -> None:
    import main

    provider = FakeProvider(discovery={"linkerd.io/v1alpha2": resource_list("linkerd.io/v1alpha2", "ServiceProfile")})
    with _patched_checker(provider):
        rc = main.main(["--check", "profile", "--check", "cluster"])

    out = capsys.readouterr().out.splitlines()
    assert rc == 0
    assert out == ["[ok] can access ServiceProfiles", "[ok] can list pods in all namespaces"]


def test_main_reports_failures_and_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    import main

    with _patched_checker(FakeProvider()):
        rc = main.main(["--check", "link"])

    assert rc == 1
    assert capsys.readouterr().out.strip() == "[fail] can access Links: Link CRD not found"


def test_main_can_i_as_user(capsys: pytest.CaptureFixture[str]) -> None:
    import main

    provider = FakeProvider(verdict=AccessVerdict(allowed=False, reason="no binding"))
    with _patched_checker(provider):
        rc = main.main(["--can-i", "list", "pods", "--namespace", "ns", "--as", "jane", "--as-group", "devs"])

    assert rc == 1
    assert capsys.readouterr().out.strip() == "[fail] not authorized to access /pods: no binding"
    q = provider.queries[0]
    assert q.subject.user == "jane"
    assert q.subject.groups == ["devs"]
    assert q.resource.namespace == "ns"


def test_main_can_i_self(capsys: pytest.CaptureFixture[str]) -> None:
    import main

    provider = FakeProvider()
    with _patched_checker(provider):
        rc = main.main(["--can-i", "get", "deployments", "--group", "apps"])

    assert rc == 0
    assert capsys.readouterr().out.strip() == "[ok] yes"
    assert provider.queries[0].is_self


def test_main_can_i_transport_error_is_raised() -> None:
    import main

    with _patched_checker(FakeProvider(verdict=ConnectionError("refused"))):
        with pytest.raises(ConnectionError):
            main.main(["--can-i", "list", "pods"])


def test_main_can_i_self_forwards_subresource(capsys: pytest.CaptureFixture[str]) -> None:
    import main

    provider = FakeProvider(verdict=AccessVerdict(allowed=False, reason="exec not permitted"))
    with _patched_checker(provider):
        rc = main.main(["--can-i", "get", "pods", "--subresource", "exec"])

    assert rc == 1
    assert capsys.readouterr().out.strip() == "[fail] not authorized to access /pods: exec not permitted"
    q = provider.queries[0]
    assert q.is_self
    assert q.resource.subresource == "exec"


def test_main_rejects_check_together_with_can_i() -> None:
    import main

    provider = FakeProvider()
    with _patched_checker(provider):
        with pytest.raises(SystemExit) as exc:
            main.main(["--check", "profile", "--can-i", "list", "pods"])

    assert exc.value.code == 2
    assert provider.queries == []


def test_build_checker_kubeconfig_and_context_override_env(monkeypatch: pytest.MonkeyPatch) -> None:
    import main

    monkeypatch.setenv("KUBECONFIG", "/env/kubeconfig")
    monkeypatch.setenv("KUBE_CONTEXT", "env-ctx")
    monkeypatch.setenv("K8S_IN_CLUSTER", "auto")
    monkeypatch.setenv("K8S_REQUEST_TIMEOUT_SECONDS", "12")

    with patch("meshauthz.providers.k8s_provider.get_k8s_provider", return_value=FakeProvider()) as mock_get:
        main._build_checker("/cli/kubeconfig", "cli-ctx")

    cfg = mock_get.call_args.args[0]
    assert cfg.kubeconfig == "/cli/kubeconfig"
    assert cfg.context == "cli-ctx"
    assert cfg.in_cluster == "never"
    assert cfg.request_timeout_seconds == 12


def test_build_checker_without_overrides_keeps_env(monkeypatch: pytest.MonkeyPatch) -> None:
    import main

    monkeypatch.setenv("KUBECONFIG", "/env/kubeconfig")
    monkeypatch.delenv("KUBE_CONTEXT", raising=False)
    monkeypatch.delenv("K8S_IN_CLUSTER", raising=False)

    with patch("meshauthz.providers.k8s_provider.get_k8s_provider", return_value=FakeProvider()) as mock_get:
        main._build_checker(None, None)

    cfg = mock_get.call_args.args[0]
    assert cfg.kubeconfig == "/env/kubeconfig"
    assert cfg.context is None
    assert cfg.in_cluster == "auto"


def test_help_does_not_need_kubernetes_client(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    import sys

    import main

    for mod in (
        "meshauthz.providers.k8s_provider",
        "meshauthz.authz.checks",
        "meshauthz.authz.capability",
    ):
        monkeypatch.delitem(sys.modules, mod, raising=False)
    # A None entry makes `import kubernetes` raise ImportError.
    monkeypatch.setitem(sys.modules, "kubernetes", None)

    with pytest.raises(SystemExit) as exc:
        main.main(["--help"])

    assert exc.value.code == 0
    assert "--can-i" in capsys.readouterr().out
    assert "meshauthz.providers.k8s_provider" not in sys.modules
