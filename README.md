# deploymonkey

This package makes the decisions for a service that deploys applications
onto a fleet of autodeployer hosts. You give it data and it gives back plain
Python objects.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `deploymonkey.models` holds the data types: `ApplicationDefinition`,
  `AutoRegistration`, `Limits`, `DeployInfo`, `Deployer`, `Deployers`,
  `GroupDefinitionRequest`, `Deployment`, `DeploymentList`,
  `DeployAppRequest`, `UndeployAppRequest`, `AppInfo` and `Config`.
  - `Deployers.by_group` and `Deployers.by_ip` filter targets.
  - `Config.app_iterator` lists every configured application along with its group.
  - `app_to_string` gives a one-line description of a build.
- `deploymonkey.deploymentid` handles deployment identifiers.
  - `make_deployment_id` builds one, for example `make_deployment_id(5, 7, 9)` returns `"DM-APPDEF--5-7-9"`.
  - `stop_prefix` returns the prefix shared by all identifiers of one group.
  - `decode_deployment_id` returns a `DeploymentID` and raises `ValueError` when the identifier is invalid.
  - An identifier with the `DM-APPDEF2-` prefix decodes to all zeros.
- `deploymonkey.hostlock` gives one lock per host.
  - `HostLockRegistry.lock(host)` and `lock_autodeployer_host(host)` are context managers.
  - While one holds the lock, no other operation can run against that autodeployer.
- `deploymonkey.diff` compares group definitions.
  - `compare` returns a `Diff` made of `AppDiff` entries. It raises `ValueError` when the namespaces differ.
  - When the new side has a build id or instance count of 0, `compare` fills it in from the old side.
  - `is_same`, `is_identical`, `are_args_identical`, `is_auto_registration_identical` and `app_limits_are_identical` are the checks it relies on.
  - `AppDiff.describe` explains a difference.
- `deploymonkey.deploystyle` holds deployment helpers.
  - `split_by_style` sorts applications onto the new or the old path, using `DeployStyle`.
  - `replace_vars` expands `${NAME}` placeholders.
  - `contains_group` checks machine-group membership.
  - `check_build_ids` rejects build id 0.
  - `precache_percent` gives how far a download has progressed, as a percentage.
- `deploymonkey.suggest` compares configured instance counts with what is actually running.
  - It looks only at always-on applications.
  - `analyse` returns a `Suggestion` of `StartApp` and `StopApp` actions.
  - Starts for a few known core services come first. After that, starts are ordered by binary name.
  - Machine groups that have no deployers are recorded in `Suggestion.missing_deployers`.
- `deploymonkey.stopper` stops instances that are no longer needed, in stages.
  - `StopQueue` holds `StopRequest` items, grouped by transaction.
  - `StopQueue.run_once` evaluates conditions, filters due requests, stops them and cleans up.
  - A `StopperRunningCondition` allows early filtering once the new instance has been up long enough. If the new instance is gone, it cancels the transaction.
  - `compute_schedule` works out the filter time and the stop time.
  - `condition_execute` combines results into a `ConditionResult`.
- `deploymonkey.scheduler` has a `Scheduler` that applies the latest suggestion only after grace periods.
  - The grace periods follow the last deploy, the last config change and the last suggestion change.
  - `check` returns a `SchedulerStatus`.
  - `apply_suggestions` runs the starts and then the stops. It skips the stops if any start failed. It does nothing when `dry_run` is set.
- `deploymonkey.autodeployers` has `AutodeployerCache`, which tracks known `AutoDeployer` hosts.
  - It records failure counts, whether each host is broken or available, their deployments and machine-group counts.
  - `ScanResult` collects the results of a single scan.
- `deploymonkey.notify` has `format_deploy_message` and `format_cancel_message`. They build notification text.
- `deploymonkey.timeseries` has `query_timeseries`, which answers `deployment_count`, `version_history` and `deployments` queries as `DataPoint` lists.
  - It raises `ValueError` for any other query.

## Example

```python
from deploymonkey.models import (
    ApplicationDefinition, Config, Deployer, Deployers, DeploymentList,
    GroupDefinitionRequest,
)
from deploymonkey.suggest import analyse

app = ApplicationDefinition(id=7, binary="server/hello-server", instances=2, always_on=True)
config = Config(
    deployers=Deployers([Deployer(host="10.0.0.1", machine_groups=["worker"])]),
    groups=[GroupDefinitionRequest(namespace="demo", applications=[app])],
)
suggestion = analyse(config, DeploymentList(), True)
print(suggestion.count())  # 2
print(suggestion)
```

## What it does not do

This package contains no server, no command-line program, no database storage and no network client. The caller supplies everything that talks to the outside world:

- `Scheduler` takes a client with `deploy_app_on_target` and `undeploy_app_on_target` methods.
- `StopQueue` takes the functions it uses to stop, filter, notify and look up deployments.
- The caller fills `AutodeployerCache` from its own scans of the registry and the hosts.