""" Built-in task catalog. Loaded once per registry; never mutated. """

from typing import Tuple

from .types import TaskDefinition, TaskKind, TaskSchema

CATEGORY_TRIGGERS = "Triggers"
CATEGORY_ACTIONS = "Actions"
CATEGORY_CONDITIONS = "Conditions"
CATEGORY_REMOTE_SCRIPTS = "Remote Scripts"
CATEGORY_CUSTOM = "Custom"
CATEGORY_OTHER = "Other"


def _builtin(id, name, kind, description, icon, color, category,
             inputs, outputs, required=(), script_path=None) -> TaskDefinition:
    return TaskDefinition(
        id=id,
        name=name,
        kind=kind,
        description=description,
        icon=icon,
        color=color,
        category=category,
        script_path=script_path,
        schema=TaskSchema.build(inputs=inputs, outputs=outputs, required=required),
    )


BUILTIN_TASK_DEFINITIONS: Tuple[TaskDefinition, ...] = (
    # Triggers
    _builtin(
        "trigger_alarm", "Alarm", TaskKind.TRIGGER,
        "Fires when an alarm is detected",
        "alert-triangle", "bg-orange-500", CATEGORY_TRIGGERS,
        inputs={"alarmType": "string", "service": "string"},
        outputs={
            "alarmId": "string",
            "alarmType": "string",
            "service": "string",
            "message": "string",
            "timestamp": "string",
        },
    ),
    _builtin(
        "trigger_incident", "Incident", TaskKind.TRIGGER,
        "Fires when an incident is opened",
        "bug", "bg-red-500", CATEGORY_TRIGGERS,
        inputs={"priority": "string", "team": "string"},
        outputs={
            "incidentId": "string",
            "priority": "string",
            "team": "string",
            "title": "string",
            "description": "string",
        },
    ),
    _builtin(
        "trigger_rabbit_full", "Queue Full", TaskKind.TRIGGER,
        "Fires when a RabbitMQ queue reaches its threshold",
        "database", "bg-purple-500", CATEGORY_TRIGGERS,
        inputs={"threshold": "number", "queue": "string"},
        outputs={
            "queueName": "string",
            "messageCount": "number",
            "usagePercent": "number",
            "threshold": "number",
        },
    ),
    # Actions
    _builtin(
        "action_webhook", "Webhook", TaskKind.ACTION,
        "Performs an HTTP call",
        "webhook", "bg-blue-500", CATEGORY_ACTIONS,
        inputs={"url": "string", "method": "string", "headers": "object", "body": "object"},
        outputs={"statusCode": "number", "responseBody": "object", "responseHeaders": "object"},
        required=("url",),
    ),
    _builtin(
        "action_email", "Send Email", TaskKind.ACTION,
        "Sends an email",
        "mail", "bg-green-500", CATEGORY_ACTIONS,
        inputs={"to": "string", "subject": "string", "body": "string"},
        outputs={"sent": "boolean", "messageId": "string"},
        required=("to", "subject"),
    ),
    _builtin(
        "action_slack", "Slack", TaskKind.ACTION,
        "Posts a Slack message",
        "message-square", "bg-indigo-500", CATEGORY_ACTIONS,
        inputs={"webhookUrl": "string", "channel": "string", "message": "string"},
        outputs={"sent": "boolean", "messageTs": "string"},
        required=("channel", "message"),
    ),
    _builtin(
        "action_script", "Script", TaskKind.ACTION,
        "Runs a custom script",
        "zap", "bg-yellow-500", CATEGORY_ACTIONS,
        inputs={"code": "string", "input": "object"},
        outputs={"result": "object", "success": "boolean", "error": "string"},
    ),
    _builtin(
        "action_delay", "Delay", TaskKind.ACTION,
        "Waits before continuing",
        "clock", "bg-gray-500", CATEGORY_ACTIONS,
        inputs={"duration": "number", "unit": "string"},
        outputs={"completed": "boolean", "duration": "number"},
        required=("duration",),
    ),
    # Conditions
    _builtin(
        "condition_if", "IF Condition", TaskKind.CONDITION,
        "Evaluates a condition and routes the flow",
        "git-branch", "bg-cyan-500", CATEGORY_CONDITIONS,
        inputs={"field": "string", "operator": "string", "value": "string"},
        outputs={"result": "boolean", "branch": "string"},
        required=("field", "value"),
    ),
    _builtin(
        "condition_filter", "Filter", TaskKind.CONDITION,
        "Filters data with an expression",
        "filter", "bg-teal-500", CATEGORY_CONDITIONS,
        inputs={"expression": "string"},
        outputs={"passed": "boolean", "data": "object"},
        required=("expression",),
    ),
    # Remote script templates
    _builtin(
        "script_restart_service", "Restart Service", TaskKind.REMOTE_SCRIPT,
        "Restarts a service on the remote machine",
        "server", "bg-emerald-500", CATEGORY_REMOTE_SCRIPTS,
        inputs={"service_name": "string", "timeout": "number", "retry_count": "number"},
        outputs={"status": "string", "message": "string", "restart_time": "number"},
        required=("service_name",),
        script_path="/opt/scripts/restart-service.sh",
    ),
    _builtin(
        "script_health_check", "Health Check", TaskKind.REMOTE_SCRIPT,
        "Checks the health of a service or endpoint",
        "terminal", "bg-sky-500", CATEGORY_REMOTE_SCRIPTS,
        inputs={"endpoint_url": "string", "expected_status": "number", "check_interval": "number"},
        outputs={"is_healthy": "boolean", "response_time_ms": "number", "status_code": "number"},
        required=("endpoint_url",),
        script_path="/opt/scripts/health-check.sh",
    ),
    _builtin(
        "script_deploy", "Deploy Application", TaskKind.REMOTE_SCRIPT,
        "Deploys an application",
        "server", "bg-violet-500", CATEGORY_REMOTE_SCRIPTS,
        inputs={
            "app_name": "string",
            "version": "string",
            "environment": "string",
            "rollback_version": "string",
        },
        outputs={"deploy_status": "string", "deployed_version": "string", "deploy_timestamp": "string"},
        required=("app_name", "version"),
        script_path="/opt/scripts/deploy.sh",
    ),
    _builtin(
        "script_backup_db", "Backup Database", TaskKind.REMOTE_SCRIPT,
        "Creates a database backup",
        "server", "bg-rose-500", CATEGORY_REMOTE_SCRIPTS,
        inputs={
            "database_name": "string",
            "backup_path": "string",
            "compression": "boolean",
            "retention_days": "number",
        },
        outputs={"backup_file": "string", "backup_size": "string", "success": "boolean"},
        required=("database_name",),
        script_path="/opt/scripts/backup-db.sh",
    ),
    _builtin(
        "script_clear_cache", "Clear Cache", TaskKind.REMOTE_SCRIPT,
        "Clears an application or system cache",
        "terminal", "bg-amber-500", CATEGORY_REMOTE_SCRIPTS,
        inputs={"cache_type": "string", "cache_key_pattern": "string"},
        outputs={"keys_cleared": "number", "success": "boolean"},
        script_path="/opt/scripts/clear-cache.sh",
    ),
    _builtin(
        "script_send_notification", "Send Notification", TaskKind.REMOTE_SCRIPT,
        "Sends a notification through Slack, Teams or email",
        "terminal", "bg-emerald-500", CATEGORY_REMOTE_SCRIPTS,
        inputs={
            "message": "string",
            "severity": "string",
            "channel": "string",
            "notification_type": "string",
        },
        outputs={"sent": "boolean", "message_id": "string"},
        required=("message",),
        script_path="/opt/scripts/send-notification.sh",
    ),
)
