# zapcore

Building blocks for a structured, leveled logger: log levels, entries and
their call sites, typed fields, a JSON encoder with configurable keys and
value encoders, and wrapping cores for hooks, raising the log level, and
sampling. It has no dependencies outside the standard library.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Levels (`zapcore.level`)

```python
from zapcore.level import Level, parse_level, level_of

lvl = parse_level("WARN")
str(lvl)                 # "warn"
lvl.capital_string()     # "WARN"
lvl.enabled(Level.ERROR) # True
level_of(Level.INFO)     # Level.INFO
```

`parse_level` accepts lower-case and all-caps names, other case mixes after
lower-casing, and the empty string as `Level.INFO`. Unknown names raise
`ValueError` with the message `unrecognized level: "..."`. `level_of`
returns the lowest enabled level of anything with an `enabled(lvl)` method
(or asks its `level()` method if it has one), and `Level.INVALID` when
nothing is enabled. `color_string` and `capital_color_string` wrap a level's
name in terminal colour codes.

## Entries (`zapcore.entry`)

`Entry` holds the level, time, logger name, message, caller (`EntryCaller`)
and stack of a log message. `EntryCaller.full_path()` gives `file:line`,
`trimmed_path()` keeps only the leaf directory, and an undefined caller
renders as `undefined`.

Cores that accept an entry register on a `CheckedEntry` through `add_core`;
`after` sets a hook to run once it has been written. `CheckedEntry.write(*fields)`
writes to every core, reports core errors to `error_output` if one is set,
and then runs the hook. The built-in `CheckWriteAction` values do nothing,
raise `SystemExit` (ending the thread), raise `PanicError` with the message,
or call `sys.exit(1)`.

## Encoding entries as JSON (`zapcore.encoder`, `zapcore.json_encoder`)

```python
from datetime import datetime, timezone

from zapcore.encoder import (
    EncoderConfig,
    epoch_time_encoder,
    lowercase_level_encoder,
    seconds_duration_encoder,
    short_caller_encoder,
)
from zapcore.entry import Entry
from zapcore.field import Field, FieldType
from zapcore.json_encoder import new_json_encoder
from zapcore.level import Level

cfg = EncoderConfig(
    message_key="msg",
    level_key="level",
    time_key="ts",
    encode_time=epoch_time_encoder,
    encode_level=lowercase_level_encoder,
    encode_duration=seconds_duration_encoder,
    encode_caller=short_caller_encoder,
)
enc = new_json_encoder(cfg)
entry = Entry(
    level=Level.INFO,
    time=datetime(1970, 1, 1, tzinfo=timezone.utc),
    message="hello",
)
line = enc.encode_entry(entry, [Field(key="user", type=FieldType.STRING, string="alice")])
# '{"level":"info","ts":0,"msg":"hello","user":"alice"}\n'
```

An empty key in the configuration leaves that part out of the output. The
line ending defaults to `"\n"` and is dropped when `skip_line_ending` is set.
Fields added to the encoder itself (`add_string`, `open_namespace`, ...) are
carried into every entry it encodes; `clone()` copies them so the original
stays untouched. Values that have no direct encoding go through the
reflected encoder (`default_reflected_encoder` in `zapcore.reflected_encoder`
writes compact JSON), which can be replaced with `new_reflected_encoder`.

Primitive encoders are plain functions: level encoders
(`lowercase_level_encoder`, `capital_level_encoder` and their colour
variants), time encoders (`epoch_time_encoder`, `epoch_millis_time_encoder`,
`epoch_nanos_time_encoder`, `iso8601_time_encoder`, `rfc3339_time_encoder`,
`rfc3339_nano_time_encoder`, `time_encoder_of_layout`), duration encoders
(`seconds_duration_encoder`, `nanos_duration_encoder`,
`millis_duration_encoder`, `string_duration_encoder`), caller encoders
(`full_caller_encoder`, `short_caller_encoder`) and `full_name_encoder`.
Times are `datetime` values (naive ones count as UTC); durations are integer
nanoseconds or `timedelta`. `format_time` formats with reference-time layouts
such as `2006-01-02T15:04:05Z07:00`, and `format_duration` renders values
like `1m0s` or `1.5ms`.

`EncoderConfig.from_dict` builds a configuration from parsed YAML or JSON
with camelCase keys (`messageKey`, `levelEncoder`, `timeEncoder`, ...).
Encoder names such as `"capital"`, `"iso8601"`, `"millis"`, `"string"` or
`"full"` are looked up by the `*_from_text` functions; `timeEncoder` may also
be `{"layout": "..."}`. Values of the wrong type raise `TypeError`.

## Fields (`zapcore.field`, `zapcore.memory_encoder`)

A `Field` is a typed key/value pair (`FieldType` says which) that adds itself
to any object encoder with `add_to`; `add_fields` adds a list in order.
Errors are written under `key`, with `keyVerbose` when their `+v` format
differs and a `keyCauses` array for exception groups or errors with an
`errors()` method. Failures while marshaling, stringifying or rendering an
error are recorded under `keyError` rather than raised; a field of unknown
type raises `ValueError`. `Field.equals` compares fields deeply.

`MapObjectEncoder` collects fields into plain nested dictionaries in its
`fields` attribute, which is handy in tests. `ObjectMarshalerFunc` and
`ArrayMarshalerFunc` (`zapcore.marshaler`) turn functions into marshalers.

## Wrapping cores

A core is any object with `enabled`, `check`, `with_fields`, `write` and
`sync` methods.

- `register_hooks(core, *hooks)` (`zapcore.hook`) calls each hook with every
  entry that the wrapped core accepts; hook failures are raised together.
- `new_increase_level_core(core, level)` (`zapcore.increase_level`) filters
  out entries below a higher level; asking for a level the core does not
  enable raises `ValueError`.
- `new_sampler_with_options(core, tick, first, thereafter, *options)`
  (`zapcore.sampler`) logs the first `first` entries with the same level and
  message in each `tick`, then every `thereafter`-th one (none when it is 0).
  `sampler_hook(fn)` reports each `SamplingDecision`. `new_sampler` takes no
  options.

## What this package does not do

There is no top-level logger, no console encoder, and no ready-made core that
writes encoded entries to a file or stream; those have to be supplied by the
application on top of these pieces.