"""
Mock domain used across the ghost tests.

Project("A").get_detailed() → ProjectDetailed("A", "Project A", customer=Customer("C1"))
Customer("C1").get_detailed() → CustomerDetailed("C1", "Customer C1")
CustomerDetailed.get_name() → "Customer C1"

Every backend call goes through a Mock on the class-level `mocks` registry,
so call counts can be asserted and behaviors swapped per test. The registry
is a class attribute, so it never takes part in structural hashing.
"""

import asyncio
from unittest.mock import Mock

from ghost import build_chain


class ProjectMocks:
    def __init__(self):
        self.get_detailed = Mock(side_effect=lambda id: ProjectDetailed(id, f"Project {id}", "C1"))
        self.find_detailed = Mock(return_value=None)
        self.get_name = Mock(side_effect=lambda name: name)


class CustomerMocks:
    def __init__(self):
        self.get_detailed = Mock(side_effect=lambda id: CustomerDetailed(id, f"Customer {id}"))
        self.get_name = Mock(side_effect=lambda name: name)


class Project:
    mocks = ProjectMocks()

    def __init__(self, id):
        self.id = id

    async def get_detailed(self):
        await asyncio.sleep(0)
        return Project.mocks.get_detailed(self.id)

    async def find_detailed(self):
        await asyncio.sleep(0)
        return Project.mocks.find_detailed(self.id)


class ProjectDetailed(Project):
    def __init__(self, id, name, customer_id):
        super().__init__(id)
        self.name = name
        self.customer = Customer(customer_id)

    async def get_name(self):
        await asyncio.sleep(0)
        return Project.mocks.get_name(self.name)


class Customer:
    mocks = CustomerMocks()

    def __init__(self, id):
        self.id = id

    async def get_detailed(self):
        await asyncio.sleep(0)
        return Customer.mocks.get_detailed(self.id)

    @classmethod
    async def get(cls, id):
        await asyncio.sleep(0)
        return Customer.mocks.get_detailed(id)


class CustomerDetailed(Customer):
    def __init__(self, id, name):
        super().__init__(id)
        self.name = name

    async def get_name(self):
        await asyncio.sleep(0)
        return Customer.mocks.get_name(self.name)


def reset_mocks():
    Project.mocks = ProjectMocks()
    Customer.mocks = CustomerMocks()


def customer_name_chain(project_id="A"):
    return (
        build_chain(Project(project_id))
        .call("get_detailed")
        .get("customer")
        .call("get_detailed")
        .call("get_name")
    )
