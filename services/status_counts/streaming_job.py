"""
Status-code stream job - consumes JSON records from a Kinesis stream, extracts the
"response" field of each one, and produces status-code records to a second stream.

Runs under Managed Service for Apache Flink (properties from the runtime property
group) or locally with IS_LOCAL set (properties from key=value arguments).
"""
import logging
import sys

from pyflink.datastream import StreamExecutionEnvironment

from shared.config import (
    IS_LOCAL, APPLICATION_PROPERTIES_FILE, PIPELINE_JARS, LOG_LEVEL,
    PROPERTY_KEYS, DEFAULT_MALFORMED_RECORDS, SOURCE_NAME, JOB_NAME
)
from shared.errors import ConfigurationError
from shared.kinesis_utils import build_source, build_sink
from shared.properties import resolve_parameters
from status_counts.transform import MalformedRecordPolicy, count_status_codes

logger = logging.getLogger(__name__)


def create_environment(is_local: bool = IS_LOCAL):
    """Get the Flink execution environment, adding connector jars for local runs."""
    env = StreamExecutionEnvironment.get_execution_environment()
    if is_local and PIPELINE_JARS:
        jars = [jar.strip() for jar in PIPELINE_JARS.split(";") if jar.strip()]
        logger.info(f"Adding {len(jars)} connector jar(s) for local execution")
        env.add_jars(*jars)
    return env


def build_pipeline(env, params):
    """Wire source -> transform -> sink onto the environment."""
    policy = MalformedRecordPolicy.parse(
        params.get(PROPERTY_KEYS["malformed_records"], DEFAULT_MALFORMED_RECORDS)
    )

    source = build_source(params)
    records = env.add_source(source, SOURCE_NAME)

    status_counts = count_status_codes(records, policy)

    sink = build_sink(params)
    return sink.attach(status_counts)


def run(args, is_local: bool = IS_LOCAL, properties_file: str = APPLICATION_PROPERTIES_FILE):
    """
    Resolve configuration, assemble the job and hand it to Flink.

    Blocks until the job is stopped. Configuration problems raise
    ConfigurationError before anything is submitted.
    """
    params = resolve_parameters(args, is_local=is_local, properties_file=properties_file)
    logger.warning(f"Application properties: {params.to_dict()}")

    env = create_environment(is_local)
    build_pipeline(env, params)

    logger.info(f"Submitting job: {JOB_NAME}")
    return env.execute(JOB_NAME)


def main(argv=None):
    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logging.getLogger("py4j").setLevel(logging.WARNING)

    args = sys.argv[1:] if argv is None else argv
    try:
        logger.info("Starting status-code stream job...")
        run(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration, job not started: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Status-code stream job interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error in status-code stream job: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
