"""
Centralized configuration for the status-code stream job.
Provides process settings, runtime property locations, property keys and job defaults.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Local runs may keep settings in a .env file next to the working directory
_env_path = Path.cwd() / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

# Execution context: any non-empty IS_LOCAL means local/manual mode
IS_LOCAL = os.getenv("IS_LOCAL", "").strip().lower() not in ("", "0", "false", "no")

# Runtime properties injected by Managed Service for Apache Flink
APPLICATION_PROPERTIES_FILE = os.getenv(
    "APPLICATION_PROPERTIES_FILE", "/etc/flink/application_properties.json"
)
APPLICATION_PROPERTY_GROUP = "FlinkApplicationProperties"

# Connector jars for local runs, semicolon separated file:// URLs
PIPELINE_JARS = os.getenv("PIPELINE_JARS", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Property keys recognised in the parameter set
PROPERTY_KEYS = {
    "region": "kinesis.region",
    "source_stream": "kinesis.source.stream",
    "source_type": "kinesis.source.type",
    "efo_consumer": "kinesis.source.efoConsumer",
    "sink_stream": "kinesis.sink.stream",
    "malformed_records": "transform.malformedRecords",
}

# Defaults used when a property is not set
DEFAULT_AWS_REGION = "eu-west-1"
DEFAULT_SOURCE_STREAM = "source"
DEFAULT_PUBLISHER_TYPE = "POLLING"
DEFAULT_EFO_CONSUMER_NAME = "sample-efo-flink-consumer"
DEFAULT_SINK_STREAM = "destination"
DEFAULT_MALFORMED_RECORDS = "FAIL"

# Consumers always start from the oldest retained record
SOURCE_INITIAL_POSITION = "TRIM_HORIZON"

SOURCE_NAME = "Kinesis source"
JOB_NAME = "Flink Kinesis Source and Sink Version 1.2"
