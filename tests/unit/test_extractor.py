"""Tests for image extraction from workload manifests."""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from imagecanon.core.errors import ContainerStructureError, ImageExtractionError, ImageParseError
from imagecanon.k8s.constants import KIND_PATH_PREFIXES
from imagecanon.k8s.extractor import collect, extract_images, path_prefix_for


def deployment(containers, init_containers=None):
    pod_spec = {"containers": containers}
    if init_containers is not None:
        pod_spec["initContainers"] = init_containers
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "web"},
        "spec": {"template": {"spec": pod_spec}},
    }


class TestKindTable:
    """Tests for the kind -> pod spec prefix table."""

    @pytest.mark.parametrize("kind,prefix", [
        ("Pod", ("spec",)),
        ("Deployment", ("spec", "template", "spec")),
        ("DaemonSet", ("spec", "template", "spec")),
        ("Job", ("spec", "template", "spec")),
        ("StatefulSet", ("spec", "template", "spec")),
        ("CronJob", ("spec", "jobTemplate", "spec", "template", "spec")),
    ])
    def test_known_kinds(self, kind, prefix):
        """Test the prefix of every supported workload kind."""
        assert path_prefix_for(kind) == prefix

    def test_unknown_kind(self):
        """Test that unsupported kinds have no prefix."""
        assert path_prefix_for("Service") == ()
        assert path_prefix_for("") == ()

    def test_table_is_read_only(self):
        """Test that the shared table cannot be modified."""
        with pytest.raises(TypeError):
            KIND_PATH_PREFIXES["ReplicaSet"] = ("spec", "template", "spec")  # type: ignore


class TestCollect:
    """Tests for collect()."""

    def test_deployment_pointer(self):
        """Test the document location of a Deployment container image."""
        manifest = deployment([{"name": "web", "image": "nginx:1.25"}])

        inventory, error = collect(manifest, "Deployment")

        assert error is None
        ref = inventory.containers["web"]
        assert ref.json_pointer == "/spec/template/spec/containers/0/image"
        assert str(ref) == "docker.io/nginx:1.25"

    def test_cronjob_pointer(self):
        """Test the document location of a CronJob container image."""
        manifest = {
            "kind": "CronJob",
            "spec": {"jobTemplate": {"spec": {"template": {"spec": {
                "containers": [{"name": "backup", "image": "alpine"}],
            }}}}},
        }

        inventory, error = collect(manifest, "CronJob")

        assert error is None
        assert inventory.containers["backup"].json_pointer == \
            "/spec/jobTemplate/spec/template/spec/containers/0/image"

    def test_pod_all_container_lists(self):
        """Test that init, regular and ephemeral containers are collected."""
        manifest = {
            "kind": "Pod",
            "spec": {
                "initContainers": [{"name": "init", "image": "busybox"}],
                "containers": [
                    {"name": "app", "image": "ghcr.io/org/app:1.0"},
                    {"name": "sidecar", "image": "envoyproxy/envoy:v1.29.0"},
                ],
                "ephemeralContainers": [{"name": "debug", "image": "nicolaka/netshoot"}],
            },
        }

        inventory, error = collect(manifest, "Pod")

        assert error is None
        assert inventory.init_containers["init"].json_pointer == "/spec/initContainers/0/image"
        assert inventory.containers["sidecar"].json_pointer == "/spec/containers/1/image"
        assert inventory.containers["sidecar"].path == "envoyproxy/envoy"
        assert inventory.ephemeral_containers["debug"].json_pointer == \
            "/spec/ephemeralContainers/0/image"

    def test_missing_lists_are_skipped(self):
        """Test that absent container lists are not errors."""
        inventory, error = collect({"kind": "Pod", "spec": {}}, "Pod")

        assert error is None
        assert inventory.is_empty()

    def test_missing_spec(self):
        """Test a manifest without any spec."""
        inventory, error = collect({"kind": "Deployment"}, "Deployment")

        assert error is None
        assert inventory.is_empty()

    def test_unknown_kind_yields_nothing(self):
        """Test that unsupported kinds produce an empty inventory."""
        manifest = {"spec": {"containers": [{"name": "app", "image": "busybox"}]}}

        inventory, error = collect(manifest, "Service")

        assert error is None
        assert inventory.is_empty()

    def test_container_list_of_wrong_type(self):
        """Test that a non-list container field is skipped."""
        manifest = {"spec": {"containers": "busybox"}}

        inventory, error = collect(manifest, "Pod")

        assert error is None
        assert inventory.is_empty()

    def test_non_object_entries_skipped(self):
        """Test that non-mapping entries are ignored without error."""
        manifest = {"spec": {"containers": ["busybox", {"name": "app", "image": "busybox"}]}}

        inventory, error = collect(manifest, "Pod")

        assert error is None
        assert list(inventory.containers) == ["app"]
        assert inventory.containers["app"].json_pointer == "/spec/containers/1/image"

    def test_duplicate_names_last_wins(self):
        """Test that a repeated container name keeps the last entry."""
        manifest = {"spec": {"containers": [
            {"name": "app", "image": "busybox:1"},
            {"name": "app", "image": "busybox:2"},
        ]}}

        inventory, _ = collect(manifest, "Pod")

        assert inventory.containers["app"].tag == "2"


class TestPartialFailure:
    """Tests for best-effort collection."""

    def test_malformed_image_is_reported(self):
        """Test that one bad image does not drop the valid ones."""
        manifest = deployment([
            {"name": "web", "image": "nginx"},
            {"name": "broken", "image": "NGINX:latest"},
        ])

        inventory, error = collect(manifest, "Deployment")

        assert list(inventory.containers) == ["web"]
        assert isinstance(error, ImageExtractionError)
        assert "NGINX" in str(error)
        assert isinstance(error.errors[0], ImageParseError)

    def test_pointer_index_after_failure(self):
        """Test that entries after a failed one keep their own index."""
        manifest = deployment([
            {"name": "broken", "image": "bad image"},
            {"name": "web", "image": "nginx"},
        ])

        inventory, error = collect(manifest, "Deployment")

        assert error is not None
        assert inventory.containers["web"].json_pointer == \
            "/spec/template/spec/containers/1/image"

    def test_errors_joined_with_semicolon(self):
        """Test the aggregate message for several failures."""
        manifest = deployment(
            [{"name": "a", "image": "A"}, {"name": "b", "image": "b:"}],
            init_containers=[{"name": "c", "image": "c@sha256:abc"}],
        )

        inventory, error = collect(manifest, "Deployment")

        assert inventory.is_empty()
        assert len(error.errors) == 3
        assert str(error) == ";".join(str(e) for e in error.errors)

    def test_missing_image_field(self):
        """Test that an absent image parses as an empty reference and fails."""
        manifest = deployment([{"name": "web"}])

        inventory, error = collect(manifest, "Deployment")

        assert inventory.is_empty()
        assert "invalid reference format" in str(error)

    def test_missing_name_is_recoverable(self):
        """Test that a container without a name does not abort collection."""
        manifest = deployment([
            {"image": "nginx"},
            {"name": "web", "image": "nginx"},
        ])

        inventory, error = collect(manifest, "Deployment")

        assert list(inventory.containers) == ["web"]
        structural = error.errors[0]
        assert isinstance(structural, ContainerStructureError)
        assert structural.field == "name"
        assert structural.pointer == "/spec/template/spec/containers/0/name"

    def test_non_string_name(self):
        """Test that a non-string name is a structural error."""
        manifest = deployment([{"name": 42, "image": "nginx"}])

        inventory, error = collect(manifest, "Deployment")

        assert inventory.is_empty()
        assert "must be a string" in str(error)

    def test_non_string_image(self):
        """Test that a non-string image is a structural error."""
        manifest = deployment([{"name": "web", "image": ["nginx"]}])

        inventory, error = collect(manifest, "Deployment")

        assert inventory.is_empty()
        assert error.errors[0].field == "image"


class TestExtractImages:
    """Tests for extract_images()."""

    def test_uses_manifest_kind(self):
        """Test that the kind is read from the manifest."""
        inventory, error = extract_images(deployment([{"name": "web", "image": "nginx"}]))

        assert error is None
        assert "web" in inventory.containers

    def test_missing_kind(self):
        """Test manifests without a kind."""
        inventory, error = extract_images({"spec": {"containers": []}})

        assert error is None
        assert inventory.is_empty()

    def test_failures_are_logged(self, caplog):
        """Test that extraction errors are logged as warnings."""
        caplog.set_level(logging.WARNING, logger="imagecanon")

        _, error = extract_images(deployment([{"name": "web", "image": "NGINX"}]))

        assert error is not None
        assert "Failed to extract image info from Deployment" in caplog.text

    def test_block_scalar_image_is_rejected(self):
        """Test that an image with a trailing newline is reported, not rewritten."""
        manifest = {"kind": "Pod", "spec": {"containers": [{"name": "a", "image": "busybox\n"}]}}

        inventory, error = extract_images(manifest)

        assert inventory.is_empty()
        assert "invalid reference format" in str(error)


class TestConcurrentCollection:
    """Tests for collecting from distinct manifests on several threads."""

    @staticmethod
    def _manifest(i):
        return {
            "kind": "Deployment",
            "spec": {"template": {"spec": {
                "initContainers": [{"name": f"init-{i}", "image": f"registry{i}.io/init:{i}"}],
                "containers": [
                    {"name": f"app-{i}-{j}", "image": f"team{i}/app{j}:v{i}"}
                    for j in range(i % 4 + 1)
                ],
            }}},
        }

    def test_threads_do_not_interfere(self):
        """Test that every inventory matches only its own manifest."""
        manifests = [self._manifest(i) for i in range(32)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(extract_images, manifests))

        for i, (inventory, error) in enumerate(results):
            assert error is None
            assert list(inventory.init_containers) == [f"init-{i}"]
            assert str(inventory.init_containers[f"init-{i}"]) == f"registry{i}.io/init:{i}"
            expected = {
                f"app-{i}-{j}": (f"docker.io/team{i}/app{j}:v{i}",
                                 f"/spec/template/spec/containers/{j}/image")
                for j in range(i % 4 + 1)
            }
            actual = {
                name: (str(ref), ref.json_pointer) for name, ref in inventory.containers.items()
            }
            assert actual == expected
