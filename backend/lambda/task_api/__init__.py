"""task_api — TaskUp task management Lambda and client.

Provides:
    - lambda_function.lambda_handler: API Gateway entry point (six task routes)
    - record_store / blob_store / label_detector: DynamoDB, S3, Rekognition adapters
    - auth: caller identity providers
    - client / cli: HTTP client and command-line tool for the API
"""

__version__ = "1.0.0"
