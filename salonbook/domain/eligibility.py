"""
Match staff to services by service name.

Staff store the *names* of the services they perform. Renaming or deleting a
service therefore has to be reconciled into every employee record; the helpers
below compute the updated records, persisting them is left to the backend.
"""

from typing import Iterable, List, Sequence

from .models import Employee


def eligible_staff(service_name: str | None, staff: Iterable[Employee]) -> List[Employee]:
    """
    Return the staff qualified for ``service_name`` by exact name match.

    Unknown or stale names simply match nobody.
    """
    if not service_name:
        return []
    return [employee for employee in staff if employee.can_perform(service_name)]


def find_employee(staff: Iterable[Employee], employee_id: str) -> Employee | None:
    for employee in staff:
        if employee.id == employee_id:
            return employee
    return None


def rename_service_for_staff(
    staff: Sequence[Employee],
    old_name: str,
    new_name: str,
) -> List[Employee]:
    """
    Replace ``old_name`` with ``new_name`` in every employee's services.

    Returns only the employees that changed.
    """
    updated: List[Employee] = []
    for employee in staff:
        if employee.can_perform(old_name):
            services = (employee.services - {old_name}) | {new_name}
            updated.append(employee.with_services(services))
    return updated


def remove_service_from_staff(staff: Sequence[Employee], service_name: str) -> List[Employee]:
    """Drop a deleted service from every employee; returns the changed ones."""
    return [
        employee.with_services(employee.services - {service_name})
        for employee in staff
        if employee.can_perform(service_name)
    ]


def sync_service_assignment(
    staff: Sequence[Employee],
    service_name: str,
    assigned_ids: Iterable[str],
) -> List[Employee]:
    """
    Make exactly the employees in ``assigned_ids`` qualified for a service.

    Returns the employees whose service set had to change.
    """
    wanted = set(assigned_ids)
    updated: List[Employee] = []

    for employee in staff:
        has_service = employee.can_perform(service_name)
        if employee.id in wanted and not has_service:
            updated.append(employee.with_services(employee.services | {service_name}))
        elif employee.id not in wanted and has_service:
            updated.append(employee.with_services(employee.services - {service_name}))

    return updated
