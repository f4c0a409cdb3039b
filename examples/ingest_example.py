#!/usr/bin/env python3
"""
Incremental ingestion example over an in-memory topic.

Simulates a skewed topic, then runs polling cycles that each read a
bounded batch and commit the checkpoint only after the batch is handled.
"""

import argparse
import json

from logingest.offset.reset_strategy import OffsetResetStrategy
from logingest.source.broker import InMemoryBroker
from logingest.source.config import SourceConfig
from logingest.source.incremental import IncrementalLogSource
from logingest.utils.logging import configure_logging


def main():
    parser = argparse.ArgumentParser(description='logingest Incremental Source Example')
    parser.add_argument('--topic', default='test-topic', help='Topic name')
    parser.add_argument('--limit', type=int, default=25, help='Events per cycle')
    args = parser.parse_args()

    configure_logging(log_level='WARNING', log_format='console')

    broker = InMemoryBroker()
    broker.create_topic(args.topic, partitions=3)

    # Partition 0 is busy, partition 2 nearly idle
    for partition, count in ((0, 60), (1, 15), (2, 3)):
        for i in range(count):
            value = json.dumps({'partition': partition, 'seq': i}).encode('utf-8')
            broker.append(args.topic, partition, value)

    config = SourceConfig(topic=args.topic, auto_offset_reset=OffsetResetStrategy.EARLIEST)
    source = IncrementalLogSource(config, broker, broker)

    checkpoint = None
    cycle = 0

    while True:
        cycle += 1
        records, next_checkpoint = source.fetch_new_data(checkpoint, args.limit)

        if records is None:
            print(f"Cycle {cycle}: no new data, checkpoint {next_checkpoint}")
            break

        per_partition = {}
        for record in records:
            per_partition[record.partition] = per_partition.get(record.partition, 0) + 1

        print(f"Cycle {cycle}: read {len(records)} events {per_partition}")

        # Commit only after the batch has been handled
        checkpoint = next_checkpoint
        print(f"  committed {checkpoint}")


if __name__ == '__main__':
    main()
