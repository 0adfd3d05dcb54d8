"""Unit tests for resource application."""

from __future__ import annotations

import pytest
from conftest import RecordingRunner, write_file

from hybrid_setup._apply_resources import apply_configuration, instance_secret_manifests
from hybrid_setup._kubectl import wait_for
from hybrid_setup._setup_config import PlatformKind, SetupConfig
from hybrid_setup._setup_errors import (
    PrerequisiteError,
    SetupValidationError,
    WaitTimeoutError,
)

_INIT_COMPONENTS = ("certificates", "crds", "webhooks", "rbac", "ingress")


def _overlay_tree(config: SetupConfig) -> None:
    write_file(config.namespace_manifest, "kind: Namespace\n")
    for component in (*_INIT_COMPONENTS, "openshift"):
        (config.initialization_dir / component).mkdir(parents=True, exist_ok=True)
    (config.overlays_dir / "controllers").mkdir(parents=True)
    for manifest in instance_secret_manifests(config):
        write_file(manifest, "kind: Secret\n")


def _apply_calls(runner: RecordingRunner) -> list[tuple[str, ...]]:
    return runner.calls_starting_with("kubectl", "apply")


def test_apply_configuration_order(make_config, runner: RecordingRunner) -> None:
    config = make_config()
    _overlay_tree(config)
    runner.respond("kubectl", "kustomize", stdout="kind: ApigeeOrganization\n")

    apply_configuration(config, runner)

    init = config.initialization_dir
    instance = config.instance_dir
    assert runner.calls == [
        ("kubectl", "get", "namespaces", "cert-manager"),
        ("kubectl", "get", "crd", "clusterissuers.cert-manager.io"),
        ("kubectl", "apply", "-f", str(config.namespace_manifest)),
        ("kubectl", "apply", "-k", str(init / "certificates")),
        ("kubectl", "apply", "--server-side", "--force-conflicts", "-k", str(init / "crds")),
        ("kubectl", "apply", "-k", str(init / "webhooks")),
        ("kubectl", "apply", "-k", str(init / "rbac")),
        ("kubectl", "apply", "-k", str(init / "ingress")),
        ("kubectl", "apply", "-k", str(config.overlays_dir / "controllers")),
        (
            "kubectl",
            "wait",
            "deployment/apigee-controller-manager",
            "deployment/apigee-ingressgateway-manager",
            "-n",
            "apigee",
            "--for=condition=available",
            "--timeout=2m",
        ),
        ("kubectl", "apply", "-f", str(instance / "datastore" / "secrets.yaml")),
        ("kubectl", "apply", "-f", str(instance / "redis" / "secrets.yaml")),
        ("kubectl", "apply", "-f", str(instance / "environments" / "test-env" / "secrets.yaml")),
        ("kubectl", "apply", "-f", str(instance / "organization" / "secrets.yaml")),
        ("kubectl", "kustomize", str(instance), "--reorder", "none"),
        ("kubectl", "apply", "-f", "-"),
        (
            "kubectl",
            "wait",
            "apigeedatastore/default",
            "apigeeredis/default",
            "apigeeenvironment/my-org-test-env",
            "apigeeorganization/my-org",
            "apigeetelemetry/apigee-telemetry",
            "-n",
            "apigee",
            "--for=jsonpath=.status.state=running",
            "--timeout=15m",
        ),
    ]
    assert runner.contexts[15] is not None
    assert runner.contexts[15].stdin == "kind: ApigeeOrganization\n", (
        "the rendered kustomization is piped to kubectl apply"
    )


def test_openshift_applies_scc_first(make_config, runner: RecordingRunner) -> None:
    config = make_config(platform=PlatformKind.OPENSHIFT)
    _overlay_tree(config)

    apply_configuration(config, runner)

    assert _apply_calls(runner)[0] == (
        "kubectl",
        "apply",
        "-k",
        str(config.initialization_dir / "openshift"),
    )


@pytest.mark.parametrize(
    ("failing", "missing"),
    [
        pytest.param(("kubectl", "get", "namespaces"), "namespace/cert-manager", id="namespace"),
        pytest.param(("kubectl", "get", "crd"), "crd/clusterissuers.cert-manager.io", id="crd"),
    ],
)
def test_missing_cert_manager_stops_before_apply(
    make_config, runner: RecordingRunner, failing: tuple[str, ...], missing: str
) -> None:
    config = make_config()
    _overlay_tree(config)
    runner.respond(*failing, return_code=1, stderr="NotFound")

    with pytest.raises(PrerequisiteError) as excinfo:
        apply_configuration(config, runner)

    assert excinfo.value.missing == (missing,)
    assert _apply_calls(runner) == [], "nothing may be applied without cert-manager"


def test_controller_timeout_is_fatal(make_config, runner: RecordingRunner) -> None:
    config = make_config()
    _overlay_tree(config)
    runner.respond("kubectl", "wait", return_code=1, stderr="timed out waiting for the condition")

    with pytest.raises(WaitTimeoutError) as excinfo:
        apply_configuration(config, runner)

    assert "2m" in str(excinfo.value)
    assert excinfo.value.exit_code == 2
    assert runner.calls_starting_with("kubectl", "kustomize") == [], (
        "instance resources wait for the controllers"
    )


def test_missing_overlay_directory_is_reported(make_config, runner: RecordingRunner) -> None:
    config = make_config()
    write_file(config.namespace_manifest, "kind: Namespace\n")

    with pytest.raises(SetupValidationError, match="certificates"):
        apply_configuration(config, runner)


def test_resource_readiness_timeout_is_fatal(make_config, runner: RecordingRunner) -> None:
    config = make_config()
    _overlay_tree(config)
    runner.respond(
        "kubectl",
        "wait",
        "apigeedatastore/default",
        return_code=1,
        stderr="error: timed out waiting for the condition on apigeeorganizations/my-org",
    )

    with pytest.raises(WaitTimeoutError) as excinfo:
        apply_configuration(config, runner)

    assert "15m" in str(excinfo.value)
    assert excinfo.value.exit_code == 2
    assert len(_apply_calls(runner)) == 12, "every resource is applied before the final wait"
    assert runner.calls[-1][:3] == ("kubectl", "wait", "apigeedatastore/default")


def test_wait_failure_without_timeout_is_worded_neutrally(runner: RecordingRunner) -> None:
    runner.respond(
        "kubectl",
        "wait",
        return_code=1,
        stderr='Error from server (NotFound): apigeeredis.apigee.cloud.google.com "default" not found',
    )

    with pytest.raises(WaitTimeoutError) as excinfo:
        wait_for(
            runner,
            ["apigeeredis/default"],
            namespace="apigee",
            condition="jsonpath=.status.state=running",
            timeout="15m",
        )

    message = str(excinfo.value)
    assert message.startswith("apigeeredis/default did not become ready within 15m")
    assert "Timed out" not in message
    assert "NotFound" in message
