# content/views.py
import logging

from django.contrib import messages
from django.http import Http404
from django.shortcuts import redirect, render

from accounts.session import permission_required
from .forms import SectionForm
from .models import ContentItem
from .services import get_section, list_sections, update_content

logger = logging.getLogger(__name__)


def home(request):
    return render(request, 'home.html', {
        'hero': get_section('hero'),
        'benefits': get_section('benefits'),
    })


@permission_required('content:read')
def sections_list(request):
    return render(request, 'content/sections.html', {'sections': list_sections()})


@permission_required('content:read')
def section_edit(request, section):
    items = list(ContentItem.objects.filter(section=section))
    if not items:
        raise Http404("Unknown section")

    if request.method == 'POST':
        if not request.admin_session.has('content:write'):
            return redirect('accounts:unauthorized')
        form = SectionForm(items, request.POST)
        if form.is_valid():
            changed = 0
            for item, value in form.changed_items():
                update_content(item, value, request.admin_session)
                changed += 1
            messages.success(request, f'{changed} item(s) saved.' if changed else 'No changes.')
            return redirect('content:section', section=section)
        messages.error(request, 'Please fix the highlighted fields.')
    else:
        form = SectionForm(items)

    return render(request, 'content/section_edit.html', {
        'section': section,
        'title': section.replace('-', ' ').capitalize(),
        'form': form,
    })
