DEFAULT_API_VERSION = "54.0"
DEFAULT_CLIENT_ID = "simpleforce"
DEFAULT_URL = "https://login.salesforce.com"
