"""HTTP client for the registry's GraphQL API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from .models import MemberName, Period, RegistryMember, RosterMember

GET_MEMBERS_QUERY = """
query GetTeachers {
    teachers: allTeachers {
        id
        name {
            honorific
            first
            last
        }
        absence {
            id
            name
        }
        fullyAbsent
    }
}
"""

GET_REPORT_TO_QUERY = """
query GetReportTo {
    reportTo
}
"""

GET_SPREADSHEET_ID_QUERY = """
query GetId {
    id: currSpreadsheetId
}
"""

GET_PERIODS_QUERY = """
query GetPeriodIds {
    periods: allPeriods {
        id
        name
    }
}
"""

CREATE_MEMBER_MUTATION = """
mutation CreateTeacher($name: GraphQlTeacherName!, $pronouns: GraphQlPronounSet!) {
    teacher: addTeacher(name: $name, pronouns: $pronouns) {
        id
    }
}
"""

RENAME_MEMBER_MUTATION = """
mutation ChangeTeacherName($id: UUID!, $name: GraphQlTeacherName!) {
    teacher: updateTeacherName(id: $id, name: $name) {
        id
    }
}
"""

SET_ABSENCE_MUTATION = """
mutation ChangeTeacherAbsence($id: UUID!, $periods: [UUID!]!, $fullyAbsent: Boolean) {
    teacher: updateTeacherAbsence(id: $id, periods: $periods, fullyAbsent: $fullyAbsent) {
        id
    }
}
"""

SET_REPORT_TO_MUTATION = """
mutation SetReportTo($reportTo: String!) {
    setReportTo(reportTo: $reportTo)
}
"""

SHE_PRONOUNS = {
    "sub": "she",
    "obj": "her",
    "posAdj": "her",
    "posPro": "hers",
    "refx": "herself",
    "grammPlu": False,
}
HE_PRONOUNS = {
    "sub": "he",
    "obj": "him",
    "posAdj": "his",
    "posPro": "his",
    "refx": "himself",
    "grammPlu": False,
}
THEY_PRONOUNS = {
    "sub": "they",
    "obj": "them",
    "posAdj": "their",
    "posPro": "theirs",
    "refx": "themself",
    "grammPlu": True,
}
PRONOUNS_BY_HONORIFIC = {
    "ms": SHE_PRONOUNS,
    "mrs": SHE_PRONOUNS,
    "miss": SHE_PRONOUNS,
    "mr": HE_PRONOUNS,
}


class RegistryApiError(RuntimeError):
    """Raised when the registry rejects a request or returns GraphQL errors."""

    def __init__(self, operation: str, error: str) -> None:
        super().__init__(f"Registry API error for {operation}: {error}")
        self.operation = operation
        self.error = error


def pronouns_for(honorific: str) -> Dict[str, Any]:
    return PRONOUNS_BY_HONORIFIC.get(honorific, THEY_PRONOUNS)


def graphql_name(member: RosterMember) -> Dict[str, Any]:
    return {
        "honorific": member.honorific.title(),
        "first": member.first_name,
        "last": member.last_name,
        "middle": [],
    }


class RegistryClient:
    """Async wrapper around the registry operations roster sync needs."""

    def __init__(
        self,
        url: str,
        client_id: str,
        client_secret: str,
        timeout: float = 15.0,
    ) -> None:
        self._client = httpx.AsyncClient(
            headers={
                "Content-Type": "application/json",
                "Client-Id": client_id,
                "Client-Secret": client_secret,
            },
            timeout=timeout,
        )
        self._url = url
        self._period_ids: Optional[Dict[Period, str]] = None

    async def close(self) -> None:
        await self._client.aclose()

    async def execute(
        self,
        query: str,
        operation: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        body = {"query": query, "operationName": operation, "variables": variables or {}}
        response = await self._client.post(self._url, json=body)
        if response.is_error:
            raise RegistryApiError(operation, f"HTTP {response.status_code} {response.reason_phrase}")
        data = response.json()
        if data.get("errors"):
            raise RegistryApiError(operation, str(data["errors"]))
        return data.get("data") or {}

    # region Queries
    async def list_members(self) -> List[RegistryMember]:
        data = await self.execute(GET_MEMBERS_QUERY, "GetTeachers")
        members: List[RegistryMember] = []
        for teacher in data.get("teachers", []):
            name = teacher.get("name") or {}
            members.append(
                RegistryMember(
                    id=teacher["id"],
                    name=MemberName.normalized(
                        name.get("honorific", ""), name.get("first", ""), name.get("last", "")
                    ),
                    absence_period_names=tuple(
                        period["name"] for period in teacher.get("absence") or []
                    ),
                    fully_absent=bool(teacher.get("fullyAbsent")),
                )
            )
        return members

    async def get_report_to(self) -> str:
        data = await self.execute(GET_REPORT_TO_QUERY, "GetReportTo")
        return data.get("reportTo") or ""

    async def get_spreadsheet_id(self) -> Optional[str]:
        data = await self.execute(GET_SPREADSHEET_ID_QUERY, "GetId")
        return data.get("id") or None

    async def list_periods(self) -> Dict[Period, str]:
        if self._period_ids is None:
            data = await self.execute(GET_PERIODS_QUERY, "GetPeriodIds")
            by_name = {period.value: period for period in Period}
            self._period_ids = {
                by_name[item["name"]]: item["id"]
                for item in data.get("periods", [])
                if item.get("name") in by_name
            }
        return self._period_ids

    # endregion

    # region Mutations
    async def create_member(self, member: RosterMember) -> str:
        variables = {"name": graphql_name(member), "pronouns": pronouns_for(member.honorific)}
        data = await self.execute(CREATE_MEMBER_MUTATION, "CreateTeacher", variables)
        return data["teacher"]["id"]

    async def rename_member(self, member: RosterMember) -> None:
        if not member.registry_id:
            raise ValueError(f"{member.formatted_name} has no registry id")
        variables = {"id": member.registry_id, "name": graphql_name(member)}
        await self.execute(RENAME_MEMBER_MUTATION, "ChangeTeacherName", variables)

    async def set_absence(self, member: RosterMember) -> None:
        if not member.registry_id:
            raise ValueError(f"{member.formatted_name} has no registry id")
        period_ids = await self.list_periods()
        variables = {
            "id": member.registry_id,
            "periods": [
                period_id
                for period, period_id in period_ids.items()
                if member.absence.absent_during(period)
            ],
            "fullyAbsent": member.absence.is_fully_absent,
        }
        await self.execute(SET_ABSENCE_MUTATION, "ChangeTeacherAbsence", variables)

    async def set_report_to(self, report_to: str) -> None:
        await self.execute(SET_REPORT_TO_MUTATION, "SetReportTo", {"reportTo": report_to})

    # endregion


__all__ = ["RegistryClient", "RegistryApiError", "pronouns_for"]
