from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import json_body
from ..container import Container
from ..sync.payload import employee_to_payload


def register(app: Flask, container: Container) -> None:
    store = container.store

    @app.route("/api/employees", methods=["GET"], endpoint="list_employees")
    def list_employees():
        include_inactive = request.args.get("include_inactive", "0").lower() in {"1", "true", "yes"}
        employees = store.list_employees(include_inactive=include_inactive)
        return jsonify({"success": True, "employees": [employee_to_payload(e) for e in employees]})

    @app.route("/api/employees", methods=["POST"], endpoint="add_employee")
    def add_employee():
        data = json_body()
        employee = store.add_employee(
            data.get("name", ""),
            data.get("position", ""),
            actor=data.get("actor"),
        )
        return jsonify({"success": True, "employee": employee_to_payload(employee)}), 201

    @app.route("/api/employees/<employee_id>/deactivate", methods=["POST"], endpoint="deactivate_employee")
    def deactivate_employee(employee_id: str):
        data = request.get_json(silent=True) or {}
        employee = store.deactivate_employee(employee_id, actor=data.get("actor"))
        return jsonify({"success": True, "employee": employee_to_payload(employee)})
