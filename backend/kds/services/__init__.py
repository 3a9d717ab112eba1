"""
Kitchen services package.

- KitchenTicketService: ticket projection, cooking workflow and reporting
- KitchenTimerService: wall-clock timers, pause/resume and display broadcast
"""

from .ticket_service import KitchenTicketService

from .timer_service import KitchenTimerService

__all__ = ['KitchenTicketService', 'KitchenTimerService']
