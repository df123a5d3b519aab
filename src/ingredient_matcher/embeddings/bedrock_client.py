"""Bedrock client for AWS services."""

import json
import logging
from typing import Any

import boto3
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)


class BedrockClient:
    """Client for interacting with AWS Bedrock."""

    def __init__(
        self,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_region: str = "eu-central-1",
        read_timeout: float = 30.0,
        connect_timeout: float = 5.0,
    ):
        """
        Initialize the Bedrock client.

        Args:
            aws_access_key_id: AWS access key ID (optional, uses credentials chain if not provided).
            aws_secret_access_key: AWS secret access key (optional, uses credentials chain if not provided).
            aws_region: AWS region for Bedrock.
            read_timeout: Seconds to wait for a model response.
            connect_timeout: Seconds to wait for a connection.
        """
        try:
            logger.info(f"Initializing Bedrock client in region {aws_region}")

            # A single attempt per call: retrying is left to the caller
            boto_config = BotoConfig(
                region_name=aws_region,
                retries={"total_max_attempts": 1, "mode": "standard"},
                read_timeout=read_timeout,
                connect_timeout=connect_timeout,
                tcp_keepalive=True,
                max_pool_connections=50,
            )

            client_kwargs: dict[str, Any] = {
                "service_name": "bedrock-runtime",
                "region_name": aws_region,
                "config": boto_config,
            }

            if aws_access_key_id and aws_secret_access_key:
                client_kwargs["aws_access_key_id"] = aws_access_key_id
                client_kwargs["aws_secret_access_key"] = aws_secret_access_key

            self.client = boto3.client(**client_kwargs)

            logger.info("Successfully initialized Bedrock client")
        except Exception as e:
            logger.error(f"Failed to initialize Bedrock client: {str(e)}")
            raise

    def invoke_model(
        self,
        model_id: str,
        body: str | bytes,
        agent_name: str = "Unknown",
    ) -> dict[str, Any]:
        """
        Invoke a Bedrock model and decode its JSON response body.

        Args:
            model_id: The Bedrock model ID to invoke.
            body: Request body (JSON string or bytes).
            agent_name: Name for logging purposes.

        Returns:
            Decoded response body.
        """
        try:
            logger.debug(f"[{agent_name}] Invoking Bedrock model: {model_id}")

            if isinstance(body, str):
                body_bytes = body.encode("utf-8")
            else:
                body_bytes = body

            logger.debug(f"[{agent_name}] Request body size: {len(body_bytes)} bytes")

            response = self.client.invoke_model(
                modelId=model_id,
                body=body_bytes,
                contentType="application/json",
                accept="application/json",
            )

            return json.loads(response["body"].read())
        except Exception as e:
            error_msg = str(e)
            error_str_lower = error_msg.lower()

            if "certificate" in error_str_lower or "ssl" in error_str_lower:
                logger.error(
                    f"Error invoking Bedrock model {model_id}: {error_msg}\n"
                    f"SSL Certificate Error detected. This is often caused by missing CA certificates.\n"
                    f"Set REQUESTS_CA_BUNDLE or AWS_CA_BUNDLE if a custom bundle is required."
                )
            elif "accessdenied" in error_str_lower or "validationexception" in error_str_lower:
                logger.error(
                    f"Error invoking Bedrock model {model_id}: {error_msg}\n"
                    f"Check that model access is enabled for {model_id} in this region "
                    f"(AWS Console → Bedrock → Model access)."
                )
            else:
                logger.error(f"Error invoking Bedrock model {model_id}: {error_msg}")
            raise
