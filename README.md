# sherpa-scaler

Building blocks for a Nomad job scaler: task group scaling policies and their
defaults, in-memory and Consul policy storage, handlers for a policy HTTP API,
a watcher that turns Nomad task group meta into policies, and the `sherpa`
command line client for talking to a running scaling server.

## Installation

    pip install .

## Command line

The `sherpa` command talks to a server over HTTP(S). The server address
defaults to `http://127.0.0.1:8000` and is changed with the top-level
`--addr` option (given before the command) or the `SHERPA_ADDR` environment
variable. Any flag can also be set through an environment variable named
`SHERPA_` followed by the flag name in upper case, with dashes turned into
underscores; a flag on the command line wins over the environment.

Policies:

    sherpa policy init                     # print an example group policy
    sherpa policy list
    sherpa policy read example
    sherpa policy write example policy.json
    sherpa policy write --policy-group-name cache example group.json
    sherpa policy delete example
    sherpa policy delete --policy-group-name cache example

Scaling:

    sherpa scale in --group-name cache --count 2 example
    sherpa scale status
    sherpa scale status <scaling-id>

System information:

    sherpa system health
    sherpa system info
    sherpa system leader
    sherpa system metrics

TLS client settings are the top-level options `--client-ca-path`,
`--client-cert-path` and `--client-cert-key-path`. Commands exit with 0 on
success, 64 on a usage error and 70 when a call fails.

## Library

- `sherpa_scaler.policy`: `GroupScalingPolicy` (with `to_dict` / `from_dict`
  using the JSON field names), `validate`, `merge_with_defaults` and the
  abstract `PolicyBackend`.
- `sherpa_scaler.backend.memory.MemoryPolicyBackend` keeps policies in
  process memory; `sherpa_scaler.backend.consul.ConsulPolicyBackend` stores
  them under `<path>policies/<job>/<group>` through
  `sherpa_scaler.consul.ConsulKV` (built from `CONSUL_HTTP_*` variables by
  `new_consul_client`).
- `sherpa_scaler.policy_api.PolicyServer` implements the policy endpoints as
  methods returning `Response` objects (status, headers, body);
  `decode_group_policy` and `decode_job_policy` validate and default-fill
  request bodies.
- `sherpa_scaler.watcher.MetaWatcher` long-polls Nomad through
  `sherpa_scaler.nomad.NomadClient` and turns task group meta keys such as
  `sherpa_enabled`, `sherpa_min_count` and `sherpa_max_count` into stored
  policies.
- `sherpa_scaler.api.Client` is the HTTP client for the server API, with the
  `policies()`, `scale()` and `system()` groups of calls.
- `sherpa_scaler.logger.setup` configures process logging (JSON or human
  format) from a `sherpa_scaler.config.log.LogConfig`.
- `sherpa_scaler.config` holds the flag and environment settings for the
  client, policy, scale, server and logging options.

## What this package does not do

- There is no `sherpa server` command and no HTTP listener: `PolicyServer`
  handlers must be mounted in a web framework of your choosing, and the
  server settings in `sherpa_scaler.config.server` are not used by any
  running server here.
- There is no internal autoscaling engine that measures resource use and
  triggers scaling, and no scaling state store.
- The command line has no `scale out` command; `Client.scale().job_group_out`
  is available from the library.

## Tests

    pip install .[test]
    pytest