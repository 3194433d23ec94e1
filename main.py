from blobjack import storage_factory
from blobjack.base.paths import timebase_path, unix_nano



def main():
    # Example usage of the storage factory
    azure_config = {
        "account_name": "myaccount",
        "account_key": "c2VjcmV0LWtleS1mb3ItZXhhbXBsZS1vbmx5",
        "container_name": "images",
    }
    aws_config = {
        "aws_access_key_id": "AKIAEXAMPLE",
        "aws_secret_access_key": "wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY",
        "region_name": "us-west-1",
        "bucket_name": "my-images",
        "base_path": "uploads",
    }

    azure_storage = storage_factory("azure", azure_config)
    s3_storage = storage_factory("aws", aws_config)

    key = f"{timebase_path()}/{unix_nano()}.png"
    print(f"Azure URL: {azure_storage.get_blob_url(key)}")
    print(f"Azure signed URL: {azure_storage.get_blob_url(key, with_signature=True)}")
    print(f"S3 URL: {s3_storage.get_blob_url(key)}")

if __name__ == "__main__":
    main()
