from typing import Literal


existing_cloud_providers = Literal["azure", "aws"]
