import logging
import os

from simpleforce import SalesforceClient
from simpleforce.auth import password_login

LOGGER = logging.getLogger()
logging.basicConfig(level=logging.INFO)


def print_users(client: SalesforceClient):
    result = client.query(
        "SELECT Id, Name, Username, Department, Manager.Name, ProfileId "
        "FROM User WHERE Name LIKE '%Integration%'"
    )
    users = list(result)
    while not result.done:
        result = result.query_more(timeout=60)
        users.extend(result)

    for user in users:
        manager = user.related_record("User", "Manager")
        print(
            user.string_field("Name"),
            user.id,
            user.string_field("Username"),
            manager.string_field("Name") if manager else "-",
            sep=" | ",
        )
        if user.string_field("Department") != "System Automations":
            user.set("Department", "System Automations").update(only_changes=True)

    LOGGER.info("%d Total Users", result.total_size)
    if client.api_usage and client.api_usage.api_usage:
        LOGGER.info("API usage: %d/%d", *client.api_usage.api_usage)


with SalesforceClient(
    login=password_login(
        os.environ["SF_USER"],
        os.environ["SF_PASS"],
        os.getenv("SF_TOKEN", ""),
        domain_url=os.getenv("SF_URL", "https://login.salesforce.com"),
    )
) as client:
    print_users(client)
