"""
Kinesis source and sink factory functions.
Turns the resolved parameter set into Flink Kinesis connectors.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from pyflink.common.serialization import SimpleStringSchema
from pyflink.common.typeinfo import Types
from pyflink.datastream.connectors.kinesis import (
    FlinkKinesisConsumer, KinesisStreamsSink, PartitionKeyGenerator
)

from shared.config import (
    PROPERTY_KEYS, DEFAULT_AWS_REGION, DEFAULT_SOURCE_STREAM, DEFAULT_PUBLISHER_TYPE,
    DEFAULT_EFO_CONSUMER_NAME, DEFAULT_SINK_STREAM, SOURCE_INITIAL_POSITION
)
from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Flink Kinesis connector property names
AWS_REGION = "aws.region"
STREAM_INITIAL_POSITION = "flink.stream.initpos"
RECORD_PUBLISHER_TYPE = "flink.stream.recordpublisher"
EFO_CONSUMER_NAME = "flink.stream.efo.consumername"


class RecordPublisherType(Enum):
    """How the source reads from the stream: shared polling or enhanced fan-out."""

    POLLING = "POLLING"
    EFO = "EFO"

    @classmethod
    def parse(cls, value: str) -> "RecordPublisherType":
        normalized = (value or "").strip().upper().replace("-", "_")
        aliases = {"ENHANCED_FANOUT": "EFO", "ENHANCED_FAN_OUT": "EFO"}
        normalized = aliases.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ConfigurationError(
                f"Unsupported {PROPERTY_KEYS['source_type']} {value!r}, "
                f"expected one of {[m.value for m in cls]}",
                context={"value": value},
            ) from None


@dataclass(frozen=True)
class SourceDescriptor:
    stream_name: str
    region: str
    publisher_type: RecordPublisherType
    initial_position: str = SOURCE_INITIAL_POSITION
    efo_consumer_name: Optional[str] = None

    def consumer_config(self) -> dict:
        """Properties passed to the Flink Kinesis consumer."""
        config = {
            AWS_REGION: self.region,
            STREAM_INITIAL_POSITION: self.initial_position,
            RECORD_PUBLISHER_TYPE: self.publisher_type.value,
        }
        if self.publisher_type is RecordPublisherType.EFO:
            config[EFO_CONSUMER_NAME] = self.efo_consumer_name
        return config


@dataclass(frozen=True)
class SinkDescriptor:
    stream_name: str
    region: str
    partition_key: Callable[[str], str]

    def client_properties(self) -> dict:
        """Properties passed to the Kinesis client used by the sink."""
        return {AWS_REGION: self.region}


def java_string_hash(text: str) -> int:
    """
    Java String.hashCode of text, as a signed 32-bit integer.

    Python's built-in hash() is salted per process, so it cannot be used for
    routing that must agree across parallel workers.
    """
    h = 0
    data = text.encode("utf-16-be", "surrogatepass")
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def partition_key(record: str) -> str:
    """Partition key for an outgoing record, derived from its text."""
    return str(java_string_hash(record))


def source_descriptor(params) -> SourceDescriptor:
    """Resolve source settings, applying defaults for anything unset."""
    publisher_type = RecordPublisherType.parse(
        params.get(PROPERTY_KEYS["source_type"], DEFAULT_PUBLISHER_TYPE)
    )
    efo_consumer_name = None
    if publisher_type is RecordPublisherType.EFO:
        efo_consumer_name = params.get(PROPERTY_KEYS["efo_consumer"], DEFAULT_EFO_CONSUMER_NAME)

    return SourceDescriptor(
        stream_name=params.get(PROPERTY_KEYS["source_stream"], DEFAULT_SOURCE_STREAM),
        region=params.get(PROPERTY_KEYS["region"], DEFAULT_AWS_REGION),
        publisher_type=publisher_type,
        efo_consumer_name=efo_consumer_name,
    )


def sink_descriptor(params) -> SinkDescriptor:
    """Resolve sink settings, applying defaults for anything unset."""
    return SinkDescriptor(
        stream_name=params.get(PROPERTY_KEYS["sink_stream"], DEFAULT_SINK_STREAM),
        region=params.get(PROPERTY_KEYS["region"], DEFAULT_AWS_REGION),
        partition_key=partition_key,
    )


def build_source(params):
    """
    Create a Flink Kinesis consumer reading records as UTF-8 strings.

    Args:
        params: Resolved ParameterSet

    Returns:
        FlinkKinesisConsumer instance

    Raises:
        ConfigurationError: if kinesis.source.type is not POLLING or EFO
    """
    descriptor = source_descriptor(params)
    logger.info(
        f"Kinesis source: stream={descriptor.stream_name} region={descriptor.region} "
        f"publisher={descriptor.publisher_type.value} position={descriptor.initial_position}"
    )
    if descriptor.efo_consumer_name:
        logger.info(f"Kinesis source EFO consumer: {descriptor.efo_consumer_name}")

    return FlinkKinesisConsumer(
        descriptor.stream_name, SimpleStringSchema(), descriptor.consumer_config()
    )


class KinesisSink:
    """
    Kinesis streams sink paired with its partition key function.

    Flink's Kinesis sink only accepts JVM-side key generators, so the stream is
    keyed by the record's text hash before it reaches the sink. Identical
    payloads land on the same sink subtask, and the fixed generator maps each
    subtask to one Kinesis partition key.

    The key written to Kinesis is therefore the sink subtask's key, not the
    text returned by descriptor.partition_key. That function only decides which
    subtask a record is routed to.
    """

    def __init__(self, descriptor: SinkDescriptor, sink):
        self.descriptor = descriptor
        self.sink = sink

    def attach(self, stream):
        keyed = stream.key_by(self.descriptor.partition_key, key_type=Types.STRING())
        # KeyedStream.sink_to would hand the sink PyFlink's internal (key, value) rows
        records = keyed.map(lambda record: record, output_type=Types.STRING())
        return records.sink_to(self.sink)


def build_sink(params) -> KinesisSink:
    """
    Create a Kinesis streams sink writing records as UTF-8 strings.

    Args:
        params: Resolved ParameterSet

    Returns:
        KinesisSink wrapping the Flink KinesisStreamsSink
    """
    descriptor = sink_descriptor(params)
    logger.info(f"Kinesis sink: stream={descriptor.stream_name} region={descriptor.region}")

    sink = KinesisStreamsSink.builder() \
        .set_kinesis_client_properties(descriptor.client_properties()) \
        .set_serialization_schema(SimpleStringSchema()) \
        .set_partition_key_generator(PartitionKeyGenerator.fixed()) \
        .set_stream_name(descriptor.stream_name) \
        .build()
    return KinesisSink(descriptor, sink)
