from django.urls import path

from .category import (
    DeleteCategoryAPIView,
    EditCategoryAPIView,
    SaveCategoryAPIView,
    ShowCategoriesAPIView,
)
from .identity import (
    LogoutAPIView,
    MeAPIView,
    RefreshSessionAPIView,
    SignInAPIView,
    csrf_token,
)
from .newsletter import (
    ShowSubscribersAPIView,
    SubscribeNewsletterAPIView,
    UnsubscribeNewsletterAPIView,
)
from .order import (
    DeleteOrderAPIView,
    EditOrderStatusAPIView,
    SaveOrderAPIView,
    ShowOrdersAPIView,
    ShowSpecificOrderAPIView,
)
from .product import (
    DeleteProductAPIView,
    EditProductAPIView,
    SaveProductAPIView,
    ShowProductBySlugAPIView,
    ShowProductsAPIView,
    ShowSpecificProductAPIView,
    ToggleProductAPIView,
    UpdateProductStockAPIView,
    UploadProductImagesAPIView,
)
from .site_details import (
    DeleteImageAPIView,
    SaveSettingsAPIView,
    ShowSettingsAPIView,
    ShowStatsAPIView,
)
from .testimonials import (
    EditTestimonialsAPIView,
    SaveTestimonialsAPIView,
    ShowTestimonialsAPIView,
    ToggleTestimonialAPIView,
)

urlpatterns = [
    # Products
    path('show-products/', ShowProductsAPIView.as_view(), name='show-products'),
    path('show-specific-product/', ShowSpecificProductAPIView.as_view(), name='show-specific-product'),
    path('show-product-by-slug/', ShowProductBySlugAPIView.as_view(), name='show-product-by-slug'),
    path('save-product/', SaveProductAPIView.as_view(), name='save-product'),
    path('edit-product/', EditProductAPIView.as_view(), name='edit-product'),
    path('delete-product/', DeleteProductAPIView.as_view(), name='delete-product'),
    path('toggle-product/', ToggleProductAPIView.as_view(), name='toggle-product'),
    path('update-product-stock/', UpdateProductStockAPIView.as_view(), name='update-product-stock'),
    path('upload-product-images/', UploadProductImagesAPIView.as_view(), name='upload-product-images'),

    # Categories
    path('show-categories/', ShowCategoriesAPIView.as_view(), name='show-categories'),
    path('save-category/', SaveCategoryAPIView.as_view(), name='save-category'),
    path('edit-category/', EditCategoryAPIView.as_view(), name='edit-category'),
    path('delete-category/', DeleteCategoryAPIView.as_view(), name='delete-category'),

    # Orders
    path('show-orders/', ShowOrdersAPIView.as_view(), name='show-orders'),
    path('show-specific-order/', ShowSpecificOrderAPIView.as_view(), name='show-specific-order'),
    path('save-order/', SaveOrderAPIView.as_view(), name='save-order'),
    path('edit-order-status/', EditOrderStatusAPIView.as_view(), name='edit-order-status'),
    path('delete-order/', DeleteOrderAPIView.as_view(), name='delete-order'),

    # Testimonials
    path('show-testimonials/', ShowTestimonialsAPIView.as_view(), name='show-testimonials'),
    path('save-testimonials/', SaveTestimonialsAPIView.as_view(), name='save-testimonials'),
    path('edit-testimonials/', EditTestimonialsAPIView.as_view(), name='edit-testimonials'),
    path('toggle-testimonial/', ToggleTestimonialAPIView.as_view(), name='toggle-testimonial'),

    # Newsletter
    path('show-subscribers/', ShowSubscribersAPIView.as_view(), name='show-subscribers'),
    path('subscribe-newsletter/', SubscribeNewsletterAPIView.as_view(), name='subscribe-newsletter'),
    path('unsubscribe-newsletter/', UnsubscribeNewsletterAPIView.as_view(), name='unsubscribe-newsletter'),

    # Site
    path('show-settings/', ShowSettingsAPIView.as_view(), name='show-settings'),
    path('save-settings/', SaveSettingsAPIView.as_view(), name='save-settings'),
    path('show-stats/', ShowStatsAPIView.as_view(), name='show-stats'),
    path('delete-image/', DeleteImageAPIView.as_view(), name='delete-image'),

    # Identity
    path('csrf/', csrf_token, name='csrf'),
    path('token/', SignInAPIView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', RefreshSessionAPIView.as_view(), name='token_refresh'),
    path('me/', MeAPIView.as_view(), name='me'),
    path('logout/', LogoutAPIView.as_view(), name='logout'),
]
