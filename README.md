# carbonstats

carbonstats queries a Carbon Billing server over its REST API. It works out
how much of a subscriber's monthly billing document (UPD) is for additional
services and how much is for call minutes.

The period is always the previous calendar month. Its end date is the last
day of the month before today. For that month the `carbonstats` command:

1. loads the subscribers (`Abonents`) whose parent is one of the configured
   parent accounts,
2. takes the **third** subscriber in that list,
3. fetches that subscriber's billing document (`FinanceOperations`) and sums
   its line items as price × volume, rounded to two decimals,
4. fetches the subscriber's VoIP counters (`VoipCounters`) and sums the
   charge for outgoing minutes, rounded to two decimals,
5. prints the document total, the minutes total, and the difference between
   them. The difference is the cost of the additional services.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Configuration

Settings are read from a `.env` file in the working directory, and that file
must exist. Variables that are already set in the environment take precedence
over the file.

| Variable         | Meaning                                                         |
|------------------|-----------------------------------------------------------------|
| `CARBON_HOST`    | Host name or address of the Carbon Billing server               |
| `CARBON_PORT`    | Port of the REST API. If it is missing or not an integer, 8082 is used |
| `CARBON_PARENTS` | Comma-separated IDs of the parent accounts to load subscribers from |
| `CARBON_DEBUG`   | `true` sets `config.log.debug`                                  |

Example `.env`:

```
CARBON_HOST=billing.example.com
CARBON_PORT=8082
CARBON_PARENTS=1,5
CARBON_DEBUG=false
```

Requests go to `http://<host>:<port>/rest_api/v2/<Model>/` as form-encoded
POSTs, with a 10-second timeout.

## Usage

```
carbonstats
```

`python -m carbonstats.cli` does the same. The command takes no options. It
prints three lines:

```
Сумма УПД:  <document total>
Сумма за минуты:  <minutes total>
Additional Cost Additional: <difference>
```

If no document exists for the period, the document total is 0. If the minutes
cannot be fetched, the minutes total is 0.

The command always logs at debug level. Each log message goes to two places:

- stdout, as tab-separated text,
- `./log/app.log`, as JSON lines.

The log file is rotated when it reaches 10 MB. Rotated files are gzipped, at
most three are kept, and any older than 14 days are deleted at the next
rotation.

The command exits with status 1 and a `carbonstats: <message>` line on
stderr when any of these happens:

- the `.env` file is missing,
- a request fails,
- the server reports an error,
- a response cannot be decoded,
- the list holds fewer than three subscribers.

## Library use

```python
from carbonstats.config import load_config
from carbonstats.logger import new_logger
from carbonstats.billing import CarbonBilling

config = load_config(".env")
log = new_logger(debug=config.log.debug, log_file="./log/app.log")
billing = CarbonBilling(config.carbon, log)

billing.print_abonents_list()
for abonent in billing.abonents:
    document = billing.get_abonent_document(abonent)
    minutes = billing.get_minutes_for_past_period(
        billing.past_date.month, billing.past_date.year, abonent.pk
    )
    print(abonent.name, billing.calculate_additional_cost(document, minutes))
```

Modules:

- `carbonstats.config`: provides `load_config(env_file=None)` and the
  dataclasses `Config`, `CarbonConfig`, `LoggerConfig` and `DBConfig`.
  `ConfigError` is raised when the `.env` file does not exist.
- `carbonstats.logger`: provides `new_logger(debug=False, log_file=...)`,
  which returns the `carbonstats` logger. Structured values are passed as
  `extra={"fields": {...}}`.
- `carbonstats.billing`: the `CarbonBilling` client.
  - The constructor takes an optional `requests.Session` and an optional
    `today` date, which sets `past_date`.
  - The constructor loads `abonents` right away.
  - Other methods: `get_abonents_list`, `get_abonent_document`,
    `get_document_amount`, `get_minutes_for_past_period`,
    `calculate_additional_cost`, `call_api`, `print_abonents_list` and `run`.
  - Also provided: `build_form_data(params)` and `previous_month_end(today)`.
  - Failed requests, malformed responses and errors reported by the server
    raise `CarbonBillingError`.
  - `get_minutes_for_past_period` returns zero values on transport or
    decoding failures and raises only for errors reported by the server.
- `carbonstats.types`: the request and response dataclasses
  (`RequestParams`, `ApiResponse`, `ResultRequest`, `AbonentInfo`,
  `DocumentInfo`, `MinutesInfo`), plus `parse_response(body)` and the API
  method, model and field names.

## What it does not do

- It reports on one subscriber per run, the third in the list. There is no
  option to choose a subscriber or a period.
- `DBConfig` exists in the configuration but is never filled in or used.
  Nothing is stored in a database or written anywhere except the log.