import os
import asyncio
import logging

import redis.asyncio as aioredis
from aiokafka import AIOKafkaProducer
from prometheus_client import Counter, start_http_server

logger = logging.getLogger(__name__)

KAFKA_PRODUCER = None
REDIS = None

METRICS_PORT = int(os.getenv('METRICS_PORT', '8001'))

SOCIAL_MUTATIONS = Counter(
    'social_graph_mutations_total',
    'Follow/unfollow requests by outcome',
    ['operation', 'outcome'],
)
FRIENDSHIP_CHANGES = Counter(
    'social_graph_friendship_changes_total',
    'Friendships derived or retracted',
    ['change'],
)

def init_metrics(port: int = METRICS_PORT):
    """Initialize Prometheus metrics server"""
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except OSError as e:
        logger.warning(f'Prometheus start failed: {e}')

async def kafka_startup():
    """Start the Kafka producer used for social graph events"""
    global KAFKA_PRODUCER

    brokers = os.getenv('KAFKA_BOOTSTRAP_SERVERS', 'kafka:9092')
    max_retries = 3
    retry_delay = 5  # seconds

    for attempt in range(max_retries):
        producer = None
        try:
            logger.info(f"Attempting to connect to Kafka brokers: {brokers} (attempt {attempt + 1}/{max_retries})")

            producer = AIOKafkaProducer(
                bootstrap_servers=brokers,
                retry_backoff_ms=500,
                request_timeout_ms=30000,
                connections_max_idle_ms=300000,
                linger_ms=100,
                compression_type='gzip',
                acks='all',
            )
            await producer.start()
            KAFKA_PRODUCER = producer
            logger.info("Kafka producer connected successfully")
            break

        except Exception as e:
            logger.warning(f'Kafka startup attempt {attempt + 1} failed: {e}')
            if producer is not None:
                await _stop_quietly(producer.stop, 'Kafka producer')
            KAFKA_PRODUCER = None

            if attempt < max_retries - 1:
                logger.info(f"Retrying Kafka connection in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error("Failed to connect to Kafka after all retries")

async def redis_startup():
    """Open the Redis connection pool used for caching and rate limits"""
    global REDIS

    redis_url = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    max_retries = 3
    retry_delay = 3  # seconds

    for attempt in range(max_retries):
        client = None
        try:
            logger.info(f"Attempting to connect to Redis: {redis_url} (attempt {attempt + 1}/{max_retries})")

            client = aioredis.from_url(
                redis_url,
                decode_responses=False,
                max_connections=20,
                retry_on_timeout=True,
                health_check_interval=30,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            await client.ping()
            REDIS = client
            logger.info("Redis connected successfully")
            break

        except Exception as e:
            logger.warning(f'Redis startup attempt {attempt + 1} failed: {e}')
            if client is not None:
                await _stop_quietly(client.aclose, 'Redis connection')
            REDIS = None

            if attempt < max_retries - 1:
                logger.info(f"Retrying Redis connection in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error("Failed to connect to Redis after all retries")

async def _stop_quietly(close, name: str):
    try:
        await close()
    except Exception as e:
        logger.debug(f"Ignoring error while closing {name}: {e}")

async def shutdown_connections():
    """Gracefully shutdown all connections"""
    global KAFKA_PRODUCER, REDIS
    logger.info("Shutting down connections...")

    if KAFKA_PRODUCER:
        try:
            await KAFKA_PRODUCER.stop()
            logger.info("Kafka producer stopped")
        except Exception as e:
            logger.error(f"Error stopping Kafka producer: {e}")
        KAFKA_PRODUCER = None

    if REDIS:
        try:
            await REDIS.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")
        REDIS = None
