from django.contrib import admin
from .models import (
    Product, Category, Order, Testimonial, NewsletterSubscriber, Setting,
)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "category_name", "price", "stock", "active", "featured")
    list_filter = ("active", "featured", "bestseller")
    search_fields = ("name", "slug", "category_name")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("customer_name", "customer_email", "total", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("customer_name", "customer_email")


admin.site.register(Category)
admin.site.register(Testimonial)
admin.site.register(NewsletterSubscriber)
admin.site.register(Setting)
