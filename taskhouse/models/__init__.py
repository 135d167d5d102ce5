from taskhouse.models.tenant import Tenant
from taskhouse.models.user import User
from taskhouse.models.project import Project
from taskhouse.models.task import Task
from taskhouse.models.comment import Comment
from taskhouse.models.project_stats import ProjectStats
from taskhouse.models.invitation import Invitation
from taskhouse.models.notification import Notification
from taskhouse.models.activity_log import ActivityLog
