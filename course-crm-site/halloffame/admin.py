from django.contrib import admin
from .models import Member, Submission


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display  = ('username', 'discord_id', 'total_points', 'level', 'last_active')
    search_fields = ('username', 'display_name', 'discord_id')
    list_filter   = ('level',)


@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    list_display  = ('submission_id', 'username', 'category', 'points', 'status',
                     'hall_of_fame_selected', 'month_cycle', 'submitted_at')
    list_filter   = ('status', 'category', 'hall_of_fame_selected', 'month_cycle')
    search_fields = ('submission_id', 'username', 'member__discord_id')
    date_hierarchy = 'submitted_at'
