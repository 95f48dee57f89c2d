import boto3
from botocore.config import Config
from toptop_analytics.config import AWS_REGION, AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY

s3_config = Config(
    retries={'max_attempts': 3, 'mode': 'standard'},
    connect_timeout=10,
    read_timeout=10
)


def make_s3_client():
    s3_kwargs = {"config": s3_config}
    if AWS_REGION:
        s3_kwargs["region_name"] = AWS_REGION
    if AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY:
        s3_kwargs.update({
            "aws_access_key_id": AWS_ACCESS_KEY_ID,
            "aws_secret_access_key": AWS_SECRET_ACCESS_KEY
        })
    return boto3.client("s3", **s3_kwargs)
