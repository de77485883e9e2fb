from pydantic import ConfigDict
from pydantic.alias_generators import to_camel

# Response models: camelCase on the wire like the request bodies, snake_case in Python
PUBLIC_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
