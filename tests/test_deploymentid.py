import pytest

from deploymonkey.deploymentid import (
    DeploymentID,
    decode_deployment_id,
    make_deployment_id,
    stop_prefix,
)


def test_make_deployment_id_format():
    assert make_deployment_id(5, 10, 3) == "DM-APPDEF--5-10-3"


@pytest.mark.parametrize("group,build,app", [(1, 2, 3), (42, 1000, 7), (0, 9, 1)])
def test_round_trip_with_app(group, build, app):
    assert decode_deployment_id(make_deployment_id(group, build, app)) == DeploymentID(group, build, app)


def test_round_trip_without_app_defaults_to_zero():
    decoded = decode_deployment_id(make_deployment_id(8, 12))
    assert decoded == DeploymentID(8, 12, 0)


def test_stop_prefix_matches_ids_of_group():
    assert make_deployment_id(5, 10, 3).startswith(stop_prefix(5))
    assert not make_deployment_id(51, 10, 3).startswith(stop_prefix(5))


def test_v2_ids_decode_to_zero():
    assert decode_deployment_id("DM-APPDEF2-1-2-3") == DeploymentID(0, 0, 0)


@pytest.mark.parametrize(
    "deplid",
    [
        "something-else",
        "DM-APPDEF--1",
        "DM-APPDEF--1-2-3-4",
        "DM-APPDEF--x-2",
        "DM-APPDEF--1-y",
        "DM-APPDEF--1-2-z",
        "DM-APPDEF-",
    ],
)
def test_invalid_ids_raise(deplid):
    with pytest.raises(ValueError):
        decode_deployment_id(deplid)