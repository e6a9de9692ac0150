"""Tests for docker-compose.yml rendering and parsing."""

import stat
from pathlib import Path

import pytest
import yaml

from compose_stack.lib.defaults import DEFAULTS
from compose_stack.stack import (
    DependencyCondition,
    build_stack,
    issue_credentials,
    load_compose_file,
    readiness_hazards,
    render_compose,
    stack_from_compose_dict,
    startup_order,
    to_compose_dict,
    write_compose_file,
)

REPO_COMPOSE_FILE = Path(__file__).resolve().parents[3] / "docker-compose.yml"


@pytest.fixture
def compose():
    return to_compose_dict(build_stack(DEFAULTS))


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------


@pytest.mark.unit
class TestToComposeDict:

    def test_top_level(self, compose):
        assert compose["name"] == "compose-stack"
        assert list(compose["services"]) == ["mongodb", "admin-ui", "web", "worker"]
        assert compose["networks"] == {"stack-net": {"driver": "bridge"}}
        assert compose["volumes"] == {"mongo-data": {}}

    def test_database_exposed_not_published(self, compose):
        mongodb = compose["services"]["mongodb"]
        assert "ports" not in mongodb
        assert mongodb["expose"] == ["27017"]

    def test_published_ports(self, compose):
        assert compose["services"]["web"]["ports"] == ["8080:8081"]
        assert compose["services"]["admin-ui"]["ports"] == ["8082:8081"]
        assert "ports" not in compose["services"]["worker"]

    def test_depends_on_long_form(self, compose):
        assert compose["services"]["web"]["depends_on"] == {
            "mongodb": {"condition": "service_healthy"}
        }

    def test_faithful_condition(self):
        compose = to_compose_dict(build_stack(DEFAULTS, readiness_gate=False))
        assert compose["services"]["worker"]["depends_on"] == {
            "mongodb": {"condition": "service_started"}
        }
        assert "healthcheck" not in compose["services"]["mongodb"]

    def test_healthcheck(self, compose):
        hc = compose["services"]["mongodb"]["healthcheck"]
        assert hc["test"][0] == "CMD-SHELL"
        assert hc["retries"] == 10

    def test_volume_mount(self, compose):
        assert compose["services"]["mongodb"]["volumes"] == ["mongo-data:/data/db"]


@pytest.mark.unit
class TestRenderCompose:

    def test_header_comment(self):
        assert render_compose(build_stack(DEFAULTS)).startswith("# Generated by `compose-stack render`")

    def test_interpolation_survives_yaml(self):
        """Compose variables and `$$` escapes are written verbatim."""
        text = render_compose(build_stack(DEFAULTS))
        assert "${MONGO_ROOT_PASSWORD:-example}" in text
        assert "$$MONGO_INITDB_ROOT_PASSWORD" in text

    def test_worker_restart_stays_a_string(self):
        """`no` must not be read back as a boolean."""
        data = yaml.safe_load(render_compose(build_stack(DEFAULTS)))
        assert data["services"]["worker"]["restart"] == "no"


@pytest.mark.unit
class TestCommittedComposeFile:
    """The repository's docker-compose.yml matches the default stack."""

    def test_matches_default_stack(self):
        assert load_compose_file(REPO_COMPOSE_FILE) == to_compose_dict(build_stack(DEFAULTS))

    def test_no_readiness_hazards(self):
        stack = stack_from_compose_dict(load_compose_file(REPO_COMPOSE_FILE))
        assert readiness_hazards(stack) == []


@pytest.mark.unit
class TestWriteComposeFile:

    def test_writes_file(self, tmp_path):
        path = write_compose_file(build_stack(DEFAULTS), tmp_path / "out" / "docker-compose.yml")

        assert path.exists()
        assert not (tmp_path / "out" / "mongo-init").exists()
        assert load_compose_file(path)["name"] == "compose-stack"

    def test_writes_init_script_when_scoped(self, tmp_path):
        stack = build_stack(DEFAULTS, scoped_credentials=True, credentials=issue_credentials())
        write_compose_file(stack, tmp_path / "docker-compose.yml")

        script = tmp_path / "mongo-init" / "init-users.js"
        assert script.read_text() == stack.init_script
        assert stat.S_IMODE(script.stat().st_mode) == 0o600

    def test_load_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="not a compose mapping"):
            load_compose_file(path)


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------


@pytest.mark.unit
class TestStackFromComposeDict:

    def test_preserves_ordering(self, compose):
        stack = stack_from_compose_dict(compose)
        assert startup_order(stack) == startup_order(build_stack(DEFAULTS))
        assert stack.service("worker").depends_on == {"mongodb": DependencyCondition.HEALTHY}
        assert stack.service("web").depends_on == {"mongodb": DependencyCondition.STARTED}

    def test_volume_owner_inferred(self, compose):
        stack = stack_from_compose_dict(compose)
        assert [(v.name, v.owner) for v in stack.volumes] == [("mongo-data", "mongodb")]

    def test_short_form_depends_on_is_started(self):
        data = {
            "services": {
                "mongo": {"image": "mongo"},
                "web": {"build": ".", "depends_on": ["mongo"]},
            }
        }
        stack = stack_from_compose_dict(data)

        assert stack.service("web").depends_on == {"mongo": DependencyCondition.STARTED}
        assert len(readiness_hazards(stack)) == 1

    def test_short_forms(self):
        data = {
            "services": {
                "mongo": {
                    "image": "mongo",
                    "ports": ["127.0.0.1:27018:27017/tcp"],
                    "environment": ["A=1", "B"],
                    "healthcheck": {"test": "mongosh --eval 1"},
                    "networks": {"backend": None},
                },
                "web": {"build": {"context": "./web"}, "command": "stack-web --reload"},
            },
            "networks": {"backend": None},
        }
        stack = stack_from_compose_dict(data, name="parsed")
        mongo = stack.service("mongo")

        assert stack.name == "parsed"
        assert mongo.ports[0].published == 27018
        assert mongo.ports[0].internal == 27017
        assert mongo.environment == {"A": "1", "B": ""}
        assert mongo.healthcheck.test == ("CMD-SHELL", "mongosh --eval 1")
        assert mongo.networks == ("backend",)
        assert stack.service("web").build == "./web"
        assert stack.service("web").command == ("stack-web", "--reload")

    def test_disabled_healthcheck(self):
        data = {"services": {"db": {"image": "mongo", "healthcheck": {"disable": True}}}}
        assert stack_from_compose_dict(data).service("db").healthcheck is None

    def test_anonymous_volume(self):
        data = {
            "services": {
                "db": {
                    "image": "mongo",
                    "volumes": ["/data/db", {"type": "volume", "target": "/data/configdb"}],
                }
            }
        }
        stack = stack_from_compose_dict(data)
        mounts = stack.service("db").volumes

        assert [m.target for m in mounts] == ["/data/db", "/data/configdb"]
        assert all(m.is_anonymous for m in mounts)
        assert mounts[0].to_compose() == "/data/db"
        assert stack.volumes == ()

    def test_malformed_entry_is_value_error(self):
        data = {"services": {"db": {"image": "mongo", "volumes": [{"source": "data"}]}}}

        with pytest.raises(ValueError, match="'db'"):
            stack_from_compose_dict(data)
